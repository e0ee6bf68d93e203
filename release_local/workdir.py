"""Scratch directories used while installing a release.

Each release gets its own directory under the work directory:
  - `output/` holds the rendered and labeled steady state resources
  - `hooks/` holds hook objects moved out of `output/`
  - `charts/` holds charts fetched from chart repositories
"""

from dataclasses import dataclass
import logging
from pathlib import Path
from shutil import rmtree
import tempfile

from aiofiles.os import makedirs, wrap
from aiofiles.ospath import exists

from .exceptions import InputException

__all__ = [
    "WorkDir",
]

_LOGGER = logging.getLogger(__name__)

OUTPUT_DIR = "output"
HOOKS_DIR = "hooks"
CHARTS_DIR = "charts"

TEMP_DIR_PREFIX = "release-local-workdir-"

_rmtree = wrap(rmtree)


@dataclass
class WorkDir:
    """The scratch directories of a single release."""

    root: Path
    """The directory of the release."""

    @classmethod
    def for_release(cls, work_dir: Path, release_name: str) -> "WorkDir":
        """Return the scratch directories of the release under the work dir."""
        if not release_name:
            raise InputException("No release name specified")
        return cls(root=work_dir / release_name)

    @property
    def output_dir(self) -> Path:
        return self.root / OUTPUT_DIR

    @property
    def hooks_dir(self) -> Path:
        return self.root / HOOKS_DIR

    @property
    def charts_dir(self) -> Path:
        return self.root / CHARTS_DIR

    async def create(self) -> None:
        """Create the directories if they don't already exist."""
        for path in (self.output_dir, self.hooks_dir, self.charts_dir):
            await makedirs(path, exist_ok=True)

    async def clear(self) -> None:
        """Remove the contents of all the directories, recreating them empty."""
        for path in (self.output_dir, self.hooks_dir, self.charts_dir):
            if await exists(path):
                await _rmtree(path)
        _LOGGER.debug("Cleared work dir %s", self.root)
        await self.create()


def make_temp_work_dir() -> Path:
    """Create a temporary work directory."""
    return Path(tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX))

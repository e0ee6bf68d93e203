"""Library for rendering and fetching charts with the `helm` command line tool.

Charts are only ever rendered client side with `helm template`, the output
is then labeled and applied by the release manager. For example:
```python
from release_local.helm import Helm, load_chart_metadata

helm = Helm()
chart_dir = await helm.fetch("bitnami/redis", "17.0.0", Path("/tmp/charts"))
await helm.template(chart_dir, "redis", "default", Path("/tmp/output"))
metadata = await load_chart_metadata(chart_dir)
```
"""

from abc import ABC, abstractmethod
import logging
from pathlib import Path

import aiofiles
from aiofiles.os import listdir, makedirs
from aiofiles.ospath import exists, isdir
from slugify import slugify

from . import command
from .exceptions import FetchException, InputException, RenderException
from .manifest import CHART_FILE_NAME, ChartMetadata, decode_document

__all__ = [
    "Renderer",
    "Fetcher",
    "Helm",
    "load_chart_metadata",
]

_LOGGER = logging.getLogger(__name__)


HELM_BIN = "helm"


class Renderer(ABC):
    """Interface for rendering a chart into manifest files."""

    @abstractmethod
    async def template(
        self,
        chart_dir: Path,
        release_name: str,
        namespace: str,
        output_dir: Path,
        is_upgrade: bool = False,
        values: list[str] | None = None,
        value_files: list[str] | None = None,
    ) -> None:
        """Render the chart into manifest files under the output directory."""


class Fetcher(ABC):
    """Interface for resolving a chart reference to a local directory."""

    @abstractmethod
    async def fetch(
        self,
        chart: str,
        version: str | None,
        dest_dir: Path,
        repo: str | None = None,
        username: str | None = None,
        password: str | None = None,
    ) -> Path:
        """Return a local directory holding the chart."""


def chart_slug(chart: str) -> str:
    """Return a directory name for a chart reference."""
    return slugify(chart, max_length=50, lowercase=True, separator="-") or "chart"


async def load_chart_metadata(chart_dir: Path) -> ChartMetadata | None:
    """Load the metadata of the chart, or None when there is no Chart.yaml."""
    chart_file = chart_dir / CHART_FILE_NAME
    if not await exists(chart_file):
        _LOGGER.warning("No %s found in chart %s", CHART_FILE_NAME, chart_dir)
        return None
    async with aiofiles.open(chart_file) as metadata_file:
        content = await metadata_file.read()
    doc = decode_document(content, exc=InputException)
    if not doc:
        raise InputException(f"Chart file {chart_file} is empty")
    return ChartMetadata.parse_doc(doc)


class Helm(Renderer, Fetcher):
    """Renders and fetches charts with the helm command line tool."""

    def __init__(
        self,
        binary: str = HELM_BIN,
        cwd: Path | None = None,
        timeout: float | None = command.DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize Helm."""
        self._binary = binary
        self._cwd = cwd
        self._timeout = timeout

    async def template(
        self,
        chart_dir: Path,
        release_name: str,
        namespace: str,
        output_dir: Path,
        is_upgrade: bool = False,
        values: list[str] | None = None,
        value_files: list[str] | None = None,
    ) -> None:
        """Run `helm template` writing manifests to the output directory."""
        args: list[str] = [
            self._binary,
            "template",
            release_name,
            str(chart_dir),
            "--namespace",
            namespace,
            "--output-dir",
            str(output_dir),
        ]
        if is_upgrade:
            args.append("--is-upgrade")
        for value in values or []:
            args.extend(["--set", value])
        for value_file in value_files or []:
            args.extend(["--values", value_file])
        _LOGGER.debug("Generating chart template for release %s", release_name)
        await command.run(
            command.Command(
                args, cwd=self._cwd, exc=RenderException, timeout=self._timeout
            )
        )

    async def fetch(
        self,
        chart: str,
        version: str | None,
        dest_dir: Path,
        repo: str | None = None,
        username: str | None = None,
        password: str | None = None,
    ) -> Path:
        """Fetch and unpack a chart, returning local charts unchanged."""
        local_path = Path(chart)
        if self._cwd and not local_path.is_absolute():
            local_path = self._cwd / local_path
        if await exists(local_path):
            return local_path

        chart_dir = dest_dir / chart_slug(chart)
        await makedirs(chart_dir, exist_ok=True)
        args = [self._binary, "fetch", "-d", str(chart_dir), "--untar", chart]
        if repo:
            args.extend(["--repo", repo])
        if version:
            args.extend(["--version", version])
        if username:
            args.extend(["--username", username])
        if password:
            args.extend(["--password", password])
        await command.run(
            command.Command(
                args,
                cwd=self._cwd,
                exc=FetchException,
                timeout=self._timeout,
                redact=[password] if password else None,
            )
        )
        for name in sorted(await listdir(chart_dir)):
            if await isdir(chart_dir / name):
                _LOGGER.info("Fetched chart %s to dir %s", chart, chart_dir / name)
                return chart_dir / name
        _LOGGER.info("Fetched chart %s to dir %s", chart, chart_dir)
        return chart_dir

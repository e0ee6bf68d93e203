"""Library for issuing commands using asyncio and returning the result."""

import asyncio
import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
import os

from .exceptions import CommandException

_LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300.0


# No public API
__all__: list[str] = []


def format_path(path: Path) -> str:
    """Format path for debugging."""
    if path.is_absolute():
        cwd = Path.cwd()
        if path.is_relative_to(cwd):
            rel_path = str(path.relative_to(cwd))
            return f"{rel_path} (abs)"
    return str(path)


@dataclass
class Command:
    """An instance of a command to run."""

    cmd: list[str]
    """Array of command line arguments."""

    cwd: Path | None = None
    """Current working directory."""

    exc: type[CommandException] = CommandException
    """Exception to throw in case of an error."""

    env: dict[str, str] | None = None
    """Environment variables for the subprocess."""

    timeout: float | None = DEFAULT_TIMEOUT
    """Seconds to wait for the command to exit, or None to wait forever."""

    redact: list[str] | None = None
    """Argument values that must not appear in logs or error messages."""

    @property
    def string(self) -> str:
        """Render the command as a single string."""
        return " ".join([shlex.quote(arg) for arg in self.cmd])

    def __str__(self) -> str:
        """Render as a debug string."""
        cwd: str = ""
        if self.cwd:
            cwd = f"({format_path(self.cwd)}) "
        args = self.cmd
        if self.redact:
            args = ["***" if arg in self.redact else arg for arg in args]
        return f"{cwd}{' '.join(shlex.quote(arg) for arg in args)}"

    async def _communicate(self) -> tuple[int | None, bytes, bytes]:
        env = {
            **os.environ,
            **(self.env if self.env else {}),
        }
        proc = await asyncio.create_subprocess_shell(
            self.string,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=self.cwd,
            env=env,
        )
        try:
            out, err = await asyncio.wait_for(proc.communicate(), self.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise
        return proc.returncode, out, err

    async def run(self) -> str:
        """Run the command, returning stdout."""
        _LOGGER.debug("Running command: %s", self)
        try:
            returncode, out, err = await self._communicate()
        except asyncio.TimeoutError as error:
            raise self.exc(f"Command '{self}' timed out") from error
        if returncode:
            errors = [f"Command '{self}' failed with return code {returncode}"]
            if out:
                errors.append(out.decode("utf-8"))
            if err:
                errors.append(err.decode("utf-8"))
            _LOGGER.debug("\n".join(errors))
            raise self.exc("\n".join(errors))
        return out.decode("utf-8") if out else ""


async def run(cmd: Command) -> str:
    """Run the specified command and return stdout."""
    return await cmd.run()

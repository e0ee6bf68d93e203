"""Library for mutating cluster state with `kubectl`.

The `Applier` interface is everything the release manager needs from the
cluster: applying a file or directory of manifests, deleting resources by
label selector or by file, listing resources and waiting for Jobs. `Kubectl`
implements it by running the `kubectl` command line tool.
"""

from abc import ABC, abstractmethod
import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from . import command
from .exceptions import ApplyException, JobWaitException, KubectlException

__all__ = [
    "Applier",
    "Kubectl",
]

_LOGGER = logging.getLogger(__name__)

KUBECTL_BIN = "kubectl"

NO_RESOURCES_FOUND = "No resources found"

DEFAULT_JOB_TIMEOUT = 30 * 60.0
DEFAULT_POLL_INTERVAL = 5.0


class Applier(ABC):
    """Interface for applying and deleting resources in the cluster."""

    @abstractmethod
    async def apply(
        self,
        path: Path,
        label_selector: str | None,
        namespace: str,
        create: bool,
        wait: bool,
    ) -> None:
        """Create or apply the manifests in a file or directory."""

    @abstractmethod
    async def delete(
        self,
        kind: str,
        label_selector: str,
        namespace: str | None,
        wait: bool,
    ) -> str:
        """Delete resources of a kind matching the selector, returning the output."""

    @abstractmethod
    async def delete_file(self, path: Path, namespace: str) -> None:
        """Delete the resources defined in the file."""

    @abstractmethod
    async def list_resources(self, namespace: str, kind: str) -> list[dict[str, Any]]:
        """Return the resources of a kind in the namespace."""

    @abstractmethod
    async def wait_for_job(
        self,
        namespace: str,
        name: str,
        timeout: float = DEFAULT_JOB_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        """Block until the Job has completed, raising if it failed or timed out."""


def _job_finished(job: dict[str, Any]) -> bool:
    """Return true if the Job completed, raising if it failed."""
    status = job.get("status") or {}
    for condition in status.get("conditions") or []:
        if condition.get("status") != "True":
            continue
        if condition.get("type") == "Complete":
            return True
        if condition.get("type") == "Failed":
            raise JobWaitException(
                f"Job {job.get('metadata', {}).get('name')} failed: "
                f"{condition.get('message') or condition.get('reason') or 'Unknown error'}"
            )
    return False


class Kubectl(Applier):
    """Applier that runs `kubectl` commands."""

    def __init__(
        self,
        binary: str = KUBECTL_BIN,
        validate: bool = False,
        cwd: Path | None = None,
        timeout: float | None = command.DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize Kubectl."""
        self._binary = binary
        self._validate = validate
        self._cwd = cwd
        self._timeout = timeout

    async def _run(
        self, args: list[str], exc: type[KubectlException] = KubectlException
    ) -> str:
        return await command.run(
            command.Command(
                [self._binary] + args, cwd=self._cwd, exc=exc, timeout=self._timeout
            )
        )

    async def apply(
        self,
        path: Path,
        label_selector: str | None,
        namespace: str,
        create: bool,
        wait: bool,
    ) -> None:
        """Create or apply the manifests in a file or directory.

        Waiting is only supported when applying.
        """
        args = ["create" if create else "apply"]
        if path.is_dir():
            args.append("--recursive")
        args.extend(["-f", str(path)])
        if label_selector:
            args.extend(["-l", label_selector])
        if namespace:
            args.extend(["--namespace", namespace])
        if wait and not create:
            args.append("--wait")
        if not self._validate:
            args.append("--validate=false")
        out = await self._run(args, exc=ApplyException)
        _LOGGER.info("%s", out.strip())

    async def delete(
        self,
        kind: str,
        label_selector: str,
        namespace: str | None,
        wait: bool,
    ) -> str:
        """Delete resources of a kind matching the selector."""
        args = ["delete", kind, "--ignore-not-found", "-l", label_selector]
        if namespace:
            args.extend(["--namespace", namespace])
        if wait:
            args.append("--wait")
        out = (await self._run(args)).strip()
        if out and not out.startswith(NO_RESOURCES_FOUND):
            _LOGGER.info("%s", out)
        return out

    async def delete_file(self, path: Path, namespace: str) -> None:
        """Delete the resources defined in the file."""
        _LOGGER.info("Deleting hook resources from file: %s", path)
        args = ["delete", "-f", str(path)]
        if namespace:
            args.extend(["--namespace", namespace])
        args.append("--wait")
        out = await self._run(args)
        _LOGGER.info("%s", out.strip())

    async def list_resources(self, namespace: str, kind: str) -> list[dict[str, Any]]:
        """Return the resources of a kind in the namespace."""
        out = await self._run(["get", kind, "--namespace", namespace, "-o", "json"])
        try:
            return json.loads(out).get("items") or []
        except json.JSONDecodeError as err:
            raise KubectlException(
                f"Unable to parse {kind} list in namespace {namespace}: {err}"
            ) from err

    async def _get_job(self, namespace: str, name: str) -> dict[str, Any]:
        out = await self._run(["get", "job", name, "--namespace", namespace, "-o", "json"])
        try:
            return json.loads(out)
        except json.JSONDecodeError as err:
            raise KubectlException(f"Unable to parse Job {name}: {err}") from err

    async def wait_for_job(
        self,
        namespace: str,
        name: str,
        timeout: float = DEFAULT_JOB_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        """Poll the Job until it completes, fails or the timeout expires."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            if _job_finished(await self._get_job(namespace, name)):
                return
            if loop.time() >= deadline:
                raise JobWaitException(
                    f"Job {name} did not complete within {timeout:.0f}s"
                )
            await asyncio.sleep(poll_interval)

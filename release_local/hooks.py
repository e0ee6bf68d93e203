"""Library for running chart hooks at the phases of an install or upgrade.

Hooks are applied in the order they were extracted from the rendered chart.
After a phase finishes the hooks whose delete policy matches the outcome of
the phase (`hook-succeeded` or `hook-failed`) are removed again. Hook Jobs
are given time to complete before they are removed.
"""

from dataclasses import dataclass
import logging

from .exceptions import HookCleanupException, HookRunException, ReleaseException
from .kubectl import Applier, DEFAULT_JOB_TIMEOUT, DEFAULT_POLL_INTERVAL
from .manifest import JOB_KIND, HookDefinition

__all__ = [
    "HookPhases",
    "HookPhaseRunner",
    "INSTALL_PHASES",
    "UPGRADE_PHASES",
]

_LOGGER = logging.getLogger(__name__)

CRD_INSTALL = "crd-install"
PRE_INSTALL = "pre-install"
POST_INSTALL = "post-install"
PRE_UPGRADE = "pre-upgrade"
POST_UPGRADE = "post-upgrade"


@dataclass(frozen=True)
class HookPhases:
    """The hook phases run around the main apply of an operation."""

    crd: str
    pre: str
    post: str


INSTALL_PHASES = HookPhases(crd=CRD_INSTALL, pre=PRE_INSTALL, post=POST_INSTALL)
UPGRADE_PHASES = HookPhases(crd=CRD_INSTALL, pre=PRE_UPGRADE, post=POST_UPGRADE)


def matching_hooks(
    hooks: list[HookDefinition], phase: str, delete_policy: str | None = None
) -> list[HookDefinition]:
    """Return the hooks for the phase, and the delete policy if specified."""
    return [hook for hook in hooks if hook.matches(phase, delete_policy)]


class HookPhaseRunner:
    """Applies and deletes the hooks of a release."""

    def __init__(
        self,
        applier: Applier,
        hooks: list[HookDefinition],
        namespace: str,
        create: bool,
        wait: bool,
        disable_hook_deletion: bool = False,
        job_wait_timeout: float = DEFAULT_JOB_TIMEOUT,
        job_poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        """Initialize HookPhaseRunner."""
        self._applier = applier
        self._hooks = hooks
        self._namespace = namespace
        self._create = create
        self._wait = wait
        self._disable_hook_deletion = disable_hook_deletion
        self._job_wait_timeout = job_wait_timeout
        self._job_poll_interval = job_poll_interval

    async def run(self, phase: str) -> None:
        """Apply all hooks of the phase, stopping at the first failure."""
        for hook in matching_hooks(self._hooks, phase):
            _LOGGER.info("Applying hook %s %s/%s", phase, hook.kind, hook.name)
            try:
                await self._applier.apply(
                    hook.file_path,
                    None,
                    self._namespace,
                    create=self._create,
                    wait=self._wait,
                )
            except ReleaseException as err:
                raise HookRunException(phase, hook.name, str(err)) from err

    async def _wait_for_hook(self, phase: str, hook: HookDefinition) -> None:
        if hook.kind != JOB_KIND or not hook.name:
            _LOGGER.warning(
                "Could not wait for hook resource to complete as it is kind %s and name %s for phase %s",
                hook.kind,
                hook.name,
                phase,
            )
            return
        _LOGGER.info(
            "Waiting for %s hook Job %s to complete before removing it",
            phase,
            hook.name,
        )
        try:
            await self._applier.wait_for_job(
                self._namespace,
                hook.name,
                timeout=self._job_wait_timeout,
                poll_interval=self._job_poll_interval,
            )
        except ReleaseException as err:
            _LOGGER.warning(
                "Job %s has not terminated for hook phase %s due to: %s so removing it anyway",
                hook.name,
                phase,
                err,
            )

    async def cleanup(self, phase: str, delete_policy: str) -> None:
        """Delete the hooks of the phase that have the delete policy.

        Every matching hook is attempted, failures are raised together.
        """
        errors: list[str] = []
        for hook in matching_hooks(self._hooks, phase, delete_policy):
            if self._disable_hook_deletion:
                _LOGGER.info(
                    "Not deleting hook %s/%s as hook deletion is disabled",
                    hook.kind,
                    hook.name,
                )
                continue
            await self._wait_for_hook(phase, hook)
            try:
                await self._applier.delete_file(hook.file_path, self._namespace)
            except ReleaseException as err:
                errors.append(f"{hook.kind}/{hook.name}: {err}")
        if errors:
            raise HookCleanupException(
                f"Failed to delete {phase} hooks with policy {delete_policy}: "
                + "\n".join(errors)
            )

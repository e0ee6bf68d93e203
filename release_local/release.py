"""Library for installing and upgrading chart releases without a server side controller.

A release is rendered client side, every resource is labeled with the release
name and chart version, hooks are run around the main apply and resources
from older versions of the release are garbage collected afterwards:
```python
from release_local.config import ReleaseConfig
from release_local.helm import Helm
from release_local.kubectl import Kubectl
from release_local.release import ReleaseManager

helm = Helm()
manager = ReleaseManager(Kubectl(), helm, helm)
result = await manager.install(
    ReleaseConfig(release_name="demo", chart="./charts/demo", namespace="demo")
)
if result.cleanup_error:
    print(f"Installed with cleanup errors: {result.cleanup_error}")
```

Errors that stop the release from converging are raised. Errors from hook
cleanup after a successful phase and from garbage collection are returned as
`ReleaseResult.cleanup_error` since every resource of the current version has
already been applied when they happen.
"""

from dataclasses import dataclass, field
import logging
from pathlib import Path

from aiofiles.ospath import exists

from .config import ManagerConfig, ReleaseConfig
from .context import current_step, trace_context
from .exceptions import (
    HookRunException,
    ReleaseException,
    ReleaseNotFoundException,
    combine_errors,
)
from .garbage import GarbageCollector
from .helm import Fetcher, Renderer, load_chart_metadata
from .hooks import INSTALL_PHASES, UPGRADE_PHASES, HookPhaseRunner, HookPhases
from .kubectl import Applier
from .labeler import add_labels_to_files
from .manifest import (
    DEPLOYMENT_KIND,
    HOOK_FAILED,
    HOOK_SUCCEEDED,
    HookDefinition,
    ReleaseIdentity,
    ReleaseSummary,
)
from .workdir import WorkDir, make_temp_work_dir

__all__ = [
    "ReleaseManager",
    "ReleaseResult",
    "apply_resources",
]

_LOGGER = logging.getLogger(__name__)


@dataclass
class ReleaseResult:
    """The outcome of a release that converged."""

    identity: ReleaseIdentity
    """The identity the resources were labeled with."""

    hooks: list[HookDefinition] = field(default_factory=list)
    """The hooks extracted from the chart."""

    cleanup_error: Exception | None = None
    """Errors from hook cleanup and garbage collection after the apply."""


async def apply_resources(
    applier: Applier,
    identity: ReleaseIdentity,
    output_dir: Path,
    create: bool,
    wait: bool,
) -> None:
    """Apply the labeled resources of the release in the output directory."""
    _LOGGER.info(
        "Applying generated chart %s YAML in dir: %s", identity.chart_name, output_dir
    )
    await applier.apply(
        output_dir,
        identity.release_selector,
        identity.namespace,
        create=create,
        wait=wait,
    )


async def _cleanup_after_failure(
    runner: HookPhaseRunner, phase: str
) -> None:
    try:
        await runner.cleanup(phase, HOOK_FAILED)
    except ReleaseException as err:
        _LOGGER.warning(
            "Failed to clean up %s hooks after %s failed: %s", phase, current_step(), err
        )


async def _cleanup_after_success(
    runner: HookPhaseRunner, phase: str
) -> Exception | None:
    try:
        await runner.cleanup(phase, HOOK_SUCCEEDED)
    except ReleaseException as err:
        _LOGGER.warning("Failed to clean up %s hooks: %s", phase, err)
        return err
    return None


class ReleaseManager:
    """Installs, upgrades and removes releases of charts."""

    def __init__(
        self,
        applier: Applier,
        renderer: Renderer,
        fetcher: Fetcher,
        config: ManagerConfig | None = None,
    ) -> None:
        """Initialize ReleaseManager."""
        self._applier = applier
        self._renderer = renderer
        self._fetcher = fetcher
        self._config = config or ManagerConfig()
        self._work_dir = self._config.work_dir
        self._garbage_collector = GarbageCollector(applier)

    def work_dir(self, release_name: str) -> WorkDir:
        """Return the scratch directories of the release.

        Without a configured work directory a temporary one is created on
        first use and kept for the lifetime of the manager.
        """
        if self._work_dir is None:
            self._work_dir = make_temp_work_dir()
        return WorkDir.for_release(self._work_dir, release_name)

    async def fetch(
        self,
        chart: str,
        version: str | None,
        dest_dir: Path,
        repo: str | None = None,
        username: str | None = None,
        password: str | None = None,
    ) -> Path:
        """Fetch a chart into the destination directory."""
        return await self._fetcher.fetch(
            chart, version, dest_dir, repo=repo, username=username, password=password
        )

    async def _resolve_chart(
        self, config: ReleaseConfig, work_dir: WorkDir, upgrade: bool
    ) -> Path:
        if upgrade and self._config.cwd is not None:
            local_chart = self._config.cwd / config.chart
            if await exists(local_chart):
                return local_chart
        _LOGGER.debug("Fetching chart: %s", config.chart)
        return await self.fetch(
            config.chart,
            config.version,
            work_dir.charts_dir,
            repo=config.repo,
            username=config.username,
            password=config.password,
        )

    async def install(self, config: ReleaseConfig) -> ReleaseResult:
        """Install a new release, creating its resources."""
        return await self._deploy(
            config, INSTALL_PHASES, upgrade=False, create=True, wait=True
        )

    async def upgrade(self, config: ReleaseConfig) -> ReleaseResult:
        """Upgrade a release, applying its resources."""
        return await self._deploy(
            config, UPGRADE_PHASES, upgrade=True, create=False, wait=config.wait
        )

    async def deploy(self, config: ReleaseConfig) -> ReleaseResult:
        """Install or upgrade the release depending on the configuration."""
        if config.upgrade:
            return await self.upgrade(config)
        return await self.install(config)

    async def _deploy(
        self,
        config: ReleaseConfig,
        phases: HookPhases,
        upgrade: bool,
        create: bool,
        wait: bool,
    ) -> ReleaseResult:
        work_dir = self.work_dir(config.release_name)
        with trace_context(f"Release '{config.release_name}'"):
            await work_dir.clear()

            with trace_context("Render"):
                chart_dir = await self._resolve_chart(config, work_dir, upgrade)
                await self._renderer.template(
                    chart_dir,
                    config.release_name,
                    config.namespace,
                    work_dir.output_dir,
                    is_upgrade=upgrade,
                    values=config.values,
                    value_files=config.value_files,
                )
                metadata = await load_chart_metadata(chart_dir)
                identity = ReleaseIdentity.resolve(
                    config.release_name,
                    config.namespace,
                    config.chart,
                    config.version,
                    metadata,
                )

            with trace_context("Label"):
                hooks = await add_labels_to_files(
                    work_dir.output_dir, work_dir.hooks_dir, identity
                )

            runner = HookPhaseRunner(
                self._applier,
                hooks,
                config.namespace,
                create=create,
                wait=wait,
                disable_hook_deletion=config.disable_hook_deletion,
                job_wait_timeout=config.job_wait_timeout,
                job_poll_interval=config.job_poll_interval,
            )

            with trace_context(f"Hooks {phases.crd}"):
                await runner.run(phases.crd)
            with trace_context(f"Hooks {phases.pre}"):
                await runner.run(phases.pre)

            with trace_context("Apply"):
                try:
                    await apply_resources(
                        self._applier,
                        identity,
                        work_dir.output_dir,
                        create=create,
                        wait=wait,
                    )
                except ReleaseException:
                    await _cleanup_after_failure(runner, phases.pre)
                    raise
            pre_error = await _cleanup_after_success(runner, phases.pre)

            with trace_context(f"Hooks {phases.post}"):
                try:
                    await runner.run(phases.post)
                except HookRunException:
                    await _cleanup_after_failure(runner, phases.post)
                    raise
            post_error = await _cleanup_after_success(runner, phases.post)

            gc_error: Exception | None = None
            with trace_context("Garbage collection"):
                try:
                    await self._garbage_collector.delete_old_resources(identity, wait)
                except ReleaseException as err:
                    _LOGGER.warning("Failed to remove resources from older releases: %s", err)
                    gc_error = err

        cleanup_error = combine_errors(pre_error, post_error, gc_error)
        if cleanup_error is not None and config.fail_on_cleanup_error:
            raise cleanup_error
        return ReleaseResult(identity=identity, hooks=hooks, cleanup_error=cleanup_error)

    async def delete(self, release_name: str, namespace: str) -> None:
        """Remove every resource of the release."""
        await self._garbage_collector.delete_release(release_name, namespace)

    async def list_releases(self, namespace: str) -> list[ReleaseSummary]:
        """Return the releases installed in the namespace."""
        releases: dict[str, ReleaseSummary] = {}
        for doc in await self._applier.list_resources(namespace, DEPLOYMENT_KIND):
            if summary := ReleaseSummary.parse_deployment(doc, namespace):
                releases[summary.release_name] = summary
        return list(releases.values())

    async def status(self, release_name: str, namespace: str) -> ReleaseSummary:
        """Return the summary of the release."""
        for summary in await self.list_releases(namespace):
            if summary.release_name == release_name:
                return summary
        raise ReleaseNotFoundException(f"chart release '{release_name}' not found")

"""Configuration objects for release-local."""

from dataclasses import dataclass, field
from pathlib import Path

from .kubectl import DEFAULT_JOB_TIMEOUT, DEFAULT_POLL_INTERVAL


@dataclass
class ReleaseConfig:
    """Configuration for installing or upgrading a single release."""

    release_name: str
    """The name of the release."""

    chart: str
    """The chart reference, either a local directory or a repository chart."""

    namespace: str = "default"
    """The namespace to install the release into."""

    version: str | None = None
    """The chart version, defaults to the version in the chart metadata."""

    values: list[str] = field(default_factory=list)
    """Values set on the command line in `key=value` form."""

    value_files: list[str] = field(default_factory=list)
    """Files containing values for the chart."""

    repo: str | None = None
    """Chart repository url used to fetch the chart."""

    username: str | None = None
    """Chart repository username."""

    password: str | None = None
    """Chart repository password."""

    upgrade: bool = False
    """Upgrade an existing release instead of installing a new one."""

    wait: bool = False
    """Wait for resources to be ready when upgrading."""

    disable_hook_deletion: bool = False
    """Leave hook resources in the cluster after their phase, for debugging."""

    fail_on_cleanup_error: bool = False
    """Raise hook cleanup and garbage collection errors instead of returning them."""

    job_wait_timeout: float = DEFAULT_JOB_TIMEOUT
    """Seconds to wait for a hook Job to complete before deleting it."""

    job_poll_interval: float = DEFAULT_POLL_INTERVAL
    """Seconds between checks of the status of a hook Job."""


@dataclass
class ManagerConfig:
    """Configuration shared by all releases handled by a ReleaseManager."""

    work_dir: Path | None = None
    """Directory holding per release scratch directories, a temp dir if unset."""

    cwd: Path | None = None
    """Directory that relative local chart paths are resolved against."""

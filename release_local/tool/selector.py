"""Library for common command line flags."""

from argparse import ArgumentParser, BooleanOptionalAction
import logging
import pathlib
from typing import Any

from release_local.config import ManagerConfig, ReleaseConfig
from release_local.helm import HELM_BIN, Helm
from release_local.kubectl import (
    DEFAULT_JOB_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    KUBECTL_BIN,
    Kubectl,
)
from release_local.release import ReleaseManager

_LOGGER = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "default"


def add_common_flags(args: ArgumentParser) -> None:
    """Add flags for the cluster and tools used by every command."""
    args.add_argument(
        "--namespace",
        "-n",
        type=str,
        default=DEFAULT_NAMESPACE,
        help="The namespace scope for this request",
    )
    args.add_argument(
        "--work-dir",
        type=pathlib.Path,
        default=None,
        help="Directory for rendered manifests, a temporary directory by default",
    )
    args.add_argument(
        "--helm-bin",
        type=str,
        default=HELM_BIN,
        help="The helm binary used to render and fetch charts",
    )
    args.add_argument(
        "--kubectl-bin",
        type=str,
        default=KUBECTL_BIN,
        help="The kubectl binary used to change the cluster",
    )
    args.add_argument(
        "--validate",
        default=False,
        action=BooleanOptionalAction,
        help="Validate resources with kubectl before applying them",
    )


def add_release_flags(args: ArgumentParser) -> None:
    """Add flags describing the release to install or upgrade."""
    args.add_argument(
        "release_name",
        help="The name of the release",
        type=str,
    )
    args.add_argument(
        "chart",
        help="The chart to install, a local directory or a repository chart",
        type=str,
    )
    args.add_argument(
        "--version",
        type=str,
        default=None,
        help="The chart version, defaults to the version in Chart.yaml",
    )
    args.add_argument(
        "--set",
        dest="values",
        action="append",
        default=[],
        help="Set a chart value on the command line (key=value)",
    )
    args.add_argument(
        "--values",
        "-f",
        dest="value_files",
        action="append",
        default=[],
        help="A values file for the chart",
    )
    args.add_argument(
        "--repo",
        type=str,
        default=None,
        help="Chart repository url used to fetch the chart",
    )
    args.add_argument("--username", type=str, default=None, help="Chart repository username")
    args.add_argument("--password", type=str, default=None, help="Chart repository password")
    args.add_argument(
        "--wait",
        default=False,
        action=BooleanOptionalAction,
        help="Wait for resources to be ready when upgrading",
    )
    args.add_argument(
        "--disable-hook-deletion",
        default=False,
        action=BooleanOptionalAction,
        help="Leave hook resources in the cluster after their phase",
    )
    args.add_argument(
        "--fail-on-cleanup-error",
        default=False,
        action=BooleanOptionalAction,
        help="Fail when hook cleanup or garbage collection of older versions fails",
    )
    args.add_argument(
        "--job-wait-timeout",
        type=float,
        default=DEFAULT_JOB_TIMEOUT,
        help="Seconds to wait for hook Jobs to complete before removing them",
    )
    add_common_flags(args)


def build_manager(**kwargs: Any) -> ReleaseManager:
    """Create a ReleaseManager from the specified flags."""
    helm = Helm(binary=kwargs["helm_bin"], cwd=pathlib.Path.cwd())
    kubectl = Kubectl(binary=kwargs["kubectl_bin"], validate=kwargs["validate"])
    return ReleaseManager(
        kubectl,
        helm,
        helm,
        ManagerConfig(work_dir=kwargs.get("work_dir"), cwd=pathlib.Path.cwd()),
    )


def build_release_config(upgrade: bool, **kwargs: Any) -> ReleaseConfig:
    """Create a ReleaseConfig from the specified flags."""
    return ReleaseConfig(
        release_name=kwargs["release_name"],
        chart=kwargs["chart"],
        namespace=kwargs["namespace"],
        version=kwargs["version"],
        values=kwargs["values"],
        value_files=kwargs["value_files"],
        repo=kwargs["repo"],
        username=kwargs["username"],
        password=kwargs["password"],
        upgrade=upgrade,
        wait=kwargs["wait"],
        disable_hook_deletion=kwargs["disable_hook_deletion"],
        fail_on_cleanup_error=kwargs["fail_on_cleanup_error"],
        job_wait_timeout=kwargs["job_wait_timeout"],
        job_poll_interval=DEFAULT_POLL_INTERVAL,
    )

"""Release-local install and upgrade actions."""

import logging
from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
)
import sys
from typing import cast, Any

from release_local.release import ReleaseResult

from . import selector

_LOGGER = logging.getLogger(__name__)


def print_result(result: ReleaseResult) -> None:
    """Print the outcome of a release."""
    identity = result.identity
    print(
        f"Release {identity.release_name} of chart {identity.chart_name} "
        f"version '{identity.chart_version}' deployed to namespace {identity.namespace}"
    )
    if result.cleanup_error:
        print(
            f"release-local warning: cleanup after the release failed: {result.cleanup_error}",
            file=sys.stderr,
        )


class InstallAction:
    """Install a new release of a chart."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "install",
                help="Install a chart",
                description="Render a chart, run its hooks and create its resources",
            ),
        )
        selector.add_release_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(
        self,
        **kwargs: Any,
    ) -> None:
        """Async Action implementation."""
        manager = selector.build_manager(**kwargs)
        result = await manager.install(
            selector.build_release_config(upgrade=False, **kwargs)
        )
        print_result(result)


class UpgradeAction:
    """Upgrade a release to a new version of a chart."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "upgrade",
                help="Upgrade a release",
                description=(
                    "Render a chart, run its hooks, apply its resources and remove "
                    "resources left over from older versions of the release"
                ),
            ),
        )
        selector.add_release_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(
        self,
        **kwargs: Any,
    ) -> None:
        """Async Action implementation."""
        manager = selector.build_manager(**kwargs)
        result = await manager.upgrade(
            selector.build_release_config(upgrade=True, **kwargs)
        )
        print_result(result)

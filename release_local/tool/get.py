"""Release-local list and status actions."""

import logging
from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
)
from typing import cast, Any

from . import selector
from .format import formatter

_LOGGER = logging.getLogger(__name__)

def add_output_flags(args: ArgumentParser) -> None:
    args.add_argument(
        "--output",
        "-o",
        choices=["yaml", "json"],
        default=None,
        help="Output format of the command",
    )


class ListAction:
    """List the releases in a namespace."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "list",
                aliases=["ls"],
                help="List releases",
                description="List the releases found from labeled Deployments",
            ),
        )
        add_output_flags(args)
        selector.add_common_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(
        self,
        namespace: str,
        output: str | None,
        **kwargs: Any,
    ) -> None:
        """Async Action implementation."""
        manager = selector.build_manager(**kwargs)
        releases = await manager.list_releases(namespace)
        if not releases and output is None:
            print(f"No releases found in namespace {namespace}")
            return
        formatter(output).print([release.to_dict() for release in releases])


class StatusAction:
    """Print the status of a release."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "status",
                help="Show the status of a release",
                description="Show the status of a release found from labeled Deployments",
            ),
        )
        args.add_argument(
            "release_name",
            help="The name of the release",
            type=str,
        )
        add_output_flags(args)
        selector.add_common_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(
        self,
        release_name: str,
        namespace: str,
        output: str | None,
        **kwargs: Any,
    ) -> None:
        """Async Action implementation."""
        manager = selector.build_manager(**kwargs)
        summary = await manager.status(release_name, namespace)
        formatter(output).print([summary.to_dict()])

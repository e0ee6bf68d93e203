"""Release-local delete action."""

from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
)
from typing import cast, Any

from . import selector


class DeleteAction:
    """Delete all resources of a release."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "delete",
                aliases=["uninstall"],
                help="Delete a release",
                description="Delete every resource labeled with the release name",
            ),
        )
        args.add_argument(
            "release_name",
            help="The name of the release",
            type=str,
        )
        selector.add_common_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(
        self,
        release_name: str,
        namespace: str,
        **kwargs: Any,
    ) -> None:
        """Async Action implementation."""
        manager = selector.build_manager(**kwargs)
        await manager.delete(release_name, namespace)
        print(f"Release {release_name} deleted from namespace {namespace}")

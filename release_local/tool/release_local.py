"""Command line tool for installing, upgrading and removing chart releases."""

import argparse
import asyncio
import logging
import sys
import traceback

from release_local.exceptions import ReleaseException
from . import delete, get, install

_LOGGER = logging.getLogger(__name__)


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Command line utility for releasing charts without a server side controller.",
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    )

    subparsers = parser.add_subparsers(dest="command", help="Command", required=True)

    install.InstallAction.register(subparsers)
    install.UpgradeAction.register(subparsers)
    delete.DeleteAction.register(subparsers)
    get.ListAction.register(subparsers)
    get.StatusAction.register(subparsers)
    return parser


def main(argv: list[str] | None = None) -> None:
    """Release-local command line tool main entry point."""
    parser = _make_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        logging.basicConfig(level=args.log_level)

    action = args.cls()
    try:
        asyncio.run(action.run(**vars(args)))
    except ReleaseException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        print("release-local error: ", err, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

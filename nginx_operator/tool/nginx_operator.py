"""Command line tool for running the nginx-operator reconcilers locally."""

import argparse
import asyncio
import logging
import sys
import traceback

from nginx_operator.exceptions import NginxOperatorException
from . import reconcile, selector

_LOGGER = logging.getLogger(__name__)


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Command line utility for the nginx-operator reconcilers.",
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    )

    subparsers = parser.add_subparsers(dest="command", help="Command", required=True)

    reconcile.ReconcileAction.register(subparsers)
    selector.SelectorAction.register(subparsers)
    return parser


def main(argv: list[str] | None = None) -> None:
    """nginx-operator command line tool main entry point."""
    parser = _make_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        logging.basicConfig(level=args.log_level)

    action = args.cls()
    try:
        asyncio.run(action.run(**vars(args)))
    except NginxOperatorException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        print("nginx-operator error: ", err, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

"""
Command-line entry point for running the project's test suites.

Usage:
    txn-harness list
    txn-harness run core
    txn-harness run integration-postgres -- -x -k albums
"""

import logging
import sys
from argparse import ArgumentParser, Namespace, RawDescriptionHelpFormatter
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from txn_harness.config import get_db_settings
from txn_harness.suites import SUITES, get_suite, run_suite

DEFAULT_LOG_LEVEL = "INFO"

logger = logging.getLogger("txn_harness")


class HelpParser(ArgumentParser):
    """Argument parser that prints the help text along with any usage error."""

    def error(self, message: str):
        sys.stderr.write(f"error: {message}\n")
        self.print_help()
        sys.exit(2)


def build_main_parser() -> ArgumentParser:
    """Set up the ``txn-harness`` argument parser."""
    parser = HelpParser(
        prog="txn-harness",
        description="Run the txn-harness test suites.",
        formatter_class=RawDescriptionHelpFormatter,
        epilog="See txn-harness <command> --help for more info",
    )
    parser.add_argument(
        "-lvl",
        "--level",
        type=str,
        default=DEFAULT_LOG_LEVEL,
        help="Set log level: DEBUG, INFO, WARNING, ERROR [Default: %(default)s]",
    )
    subparsers = parser.add_subparsers(dest="subparsers", required=True)

    list_parser = subparsers.add_parser("list", help="List the available suites.")
    list_parser.set_defaults(func=process_list)

    run_parser = subparsers.add_parser(
        "run",
        help="Run one suite through pytest.",
        epilog="Arguments after -- are passed to pytest unchanged.",
    )
    run_parser.add_argument("suite", type=str, help="Name of the suite to run.")
    run_parser.add_argument(
        "--root",
        type=Path,
        default=Path.cwd(),
        help="Project root the suite paths are relative to [Default: current directory]",
    )
    run_parser.set_defaults(func=process_run)

    return parser


def process_list(args: Namespace) -> int:
    db_settings = get_db_settings()
    width = max(len(name) for name in SUITES)
    for name, suite in SUITES.items():
        status = ""
        if suite.adapter is not None and not db_settings.target(suite.adapter).is_configured:
            status = "  [not configured]"
        print(f"{name.ljust(width)}  {suite.description}{status}")
    return 0


def process_run(args: Namespace) -> int:
    try:
        suite = get_suite(args.suite)
    except KeyError:
        sys.stderr.write(
            f"error: unknown suite '{args.suite}'. Run 'txn-harness list' to see suites.\n"
        )
        return 2

    return run_suite(suite, get_db_settings(), args.root, args.pytest_args)


def split_pytest_args(argv: Sequence[str]) -> Tuple[List[str], List[str]]:
    """
    Split the command line at the first ``--``.

    Everything after it goes to pytest untouched, so pytest options never
    reach argparse and options of ours may follow the suite name.
    """
    argv = list(argv)
    if "--" not in argv:
        return argv, []
    index = argv.index("--")
    return argv[:index], argv[index + 1 :]


def main(argv: Optional[List[str]] = None) -> int:
    own_args, pytest_args = split_pytest_args(sys.argv[1:] if argv is None else argv)
    parser = build_main_parser()
    args = parser.parse_args(own_args)
    args.pytest_args = pytest_args
    logging.basicConfig(format="[%(asctime)s] %(levelname)s: %(message)s")
    logger.setLevel(args.level.upper())
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

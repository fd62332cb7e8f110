"""Command line entry point: ``selfenv [--quiet|--verbose] [--toolchain VERSION]``."""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from selfenv import __version__
from selfenv.bootstrap import ensure_self_venv
from selfenv.errors import SelfEnvError, log_error
from selfenv.logging import configure_logging, get_logger, silence_logging
from selfenv.tui import echo, error, quiet
from selfenv.types import CommandOutput, PythonVersionRequest

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="selfenv",
        description="Bootstrap the private interpreter environment.",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-q", "--quiet", action="store_true", help="only print errors")
    verbosity.add_argument(
        "-v", "--verbose", action="store_true", help="print urls, paths and debug logs"
    )
    parser.add_argument(
        "--toolchain",
        type=PythonVersionRequest.parse,
        help="interpreter to build the environment with (e.g. cpython@3.11)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    output = CommandOutput.from_flags(args.quiet, args.verbose)
    if output is CommandOutput.VERBOSE:
        configure_logging(logging.DEBUG)
    else:
        silence_logging()

    try:
        with quiet(output is CommandOutput.QUIET):
            venv_dir = asyncio.run(ensure_self_venv(output, args.toolchain))
    except SelfEnvError as e:
        log_error(e, {"toolchain": str(args.toolchain) if args.toolchain else None}, logger)
        error(str(e))
        return 1

    if output is CommandOutput.VERBOSE:
        echo(f"self-venv: {venv_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

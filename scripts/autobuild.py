#!/usr/bin/env python3
"""
autobuild Script.

Rebuilds a solution whenever the solution, one of its projects, or one
of their source files changes, then runs an optional test command.
Press B to rebuild immediately, any other key to rerun the test command.
Requires Python 3.11+.

Usage:
    python scripts/autobuild.py [--msbuild_args="..."] [--working_dir=DIR] [command...]

Example:
    python scripts/autobuild.py --msbuild_args="/property:Configuration=Release" \
        --working_dir=bin/Release foo.exe bar baz
"""

import argparse
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from orchestrator.app import run_autobuild
from utils import console
from utils.errors import FatalError
from utils.logger import configure_logging, get_logger


configure_logging()
logger = get_logger("autobuild")


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Rebuild a solution whenever it or its dependencies change"
    )
    parser.add_argument(
        "--msbuild_args",
        "--build-args",
        dest="build_args",
        default="",
        help="Arguments for the build tool; may include the solution file to build",
    )
    parser.add_argument(
        "--working_dir",
        "--working-dir",
        dest="working_dir",
        type=Path,
        default=None,
        help="Working directory to use when running the test command",
    )
    parser.add_argument(
        "--delay",
        type=int,
        default=None,
        metavar="T",
        help="Batch up notifications for T milliseconds before handling them",
    )
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Test command to run after every successful build",
    )

    args = parser.parse_args()

    if args.delay is not None and args.delay < 0:
        parser.error(f"invalid delay milliseconds: {args.delay}")

    try:
        run_autobuild(
            build_args=args.build_args,
            test_argv=args.command,
            test_working_dir=args.working_dir,
            delay_ms=args.delay,
        )
    except FatalError as e:
        logger.error("fatal_error", error=str(e))
        console.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("cancelled_by_user")
        print("\nCancelled by user")
        sys.exit(1)


if __name__ == "__main__":
    main()

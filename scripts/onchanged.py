#!/usr/bin/env python3
"""
onchanged Script.

Run a command whenever a file (or files in a directory) are changed.
Press any key to run the command immediately.
Requires Python 3.11+.

Usage:
    python scripts/onchanged.py [--delay=T] path command [args...] [> out.txt] [2>> err.log]
"""

import argparse
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from orchestrator.app import run_onchanged
from utils import console
from utils.errors import FatalError
from utils.logger import configure_logging, get_logger


configure_logging()
logger = get_logger("onchanged")


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Run a command whenever a file (or files in a directory) are changed."
    )
    parser.add_argument(
        "--delay",
        type=int,
        default=None,
        metavar="T",
        help="Batch up notifications for T milliseconds before handling them",
    )
    parser.add_argument(
        "path",
        help="File or directory to watch",
    )
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Command to run; >, >>, 2> and 2>> redirect its output to files",
    )

    args = parser.parse_args()

    if not args.command:
        parser.error("a command to run is required")
    if args.delay is not None and args.delay < 0:
        parser.error(f"invalid delay milliseconds: {args.delay}")

    try:
        run_onchanged(args.path, args.command, delay_ms=args.delay)
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

"""
onchanged Console Output.

User-facing terminal output: coloured headers, warnings and errors,
plus the ANSI helpers shared by the process runner.
Requires Python 3.11+.
"""

import re
import sys
import threading
from datetime import datetime
from typing import TextIO

RESET = "\x1b[0m"
RED = "\x1b[91m"
YELLOW = "\x1b[93m"
CYAN = "\x1b[96m"

# CSI sequences of any kind; an unterminated one runs to end of line
_ESCAPE_RE = re.compile(r"\x1b\[[0-9;?]*(?:[A-Za-z]|$)")

# Every console write goes through this lock so lines from concurrent
# output pumps and the notifier never interleave mid-line.
console_lock = threading.RLock()


def strip_escape_codes(line: str) -> str:
    """Remove terminal colour escape sequences from a line."""
    return _ESCAPE_RE.sub("", line)


def colorize(text: str, color: str) -> str:
    """Wrap text in a colour sequence and a reset."""
    return f"{color}{text}{RESET}"


def timestamp() -> str:
    """Wall clock time with millisecond precision, for header lines."""
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]


def write_line(line: str, stream: TextIO | None = None) -> None:
    """Write one line to the console (stdout unless told otherwise)."""
    out = stream if stream is not None else sys.stdout
    with console_lock:
        out.write(line + "\n")
        out.flush()


def header(message: str) -> None:
    """Print a cyan header line to stdout."""
    write_line(colorize(message, CYAN))


def warning(message: str) -> None:
    """Print a yellow warning line to stderr."""
    write_line(colorize(message, YELLOW), sys.stderr)


def error(message: str) -> None:
    """Print a red error line to stderr."""
    write_line(colorize(message, RED), sys.stderr)

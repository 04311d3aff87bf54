"""
onchanged Runner Package.

External process execution with redirection and output filtering.
Requires Python 3.11+.
"""

from runner.command import (
    EXIT_NOT_FOUND,
    EXIT_NOT_STARTED,
    CommandSpec,
    RedirectPlan,
    RedirectTarget,
    parse_command,
)
from runner.process_runner import OutputFilter, ProcessRunner
from runner.build_runner import BuildOutputFilter, BuildRunner
from runner.trigger import InteractiveTrigger

__all__ = [
    "EXIT_NOT_FOUND",
    "EXIT_NOT_STARTED",
    "CommandSpec",
    "RedirectPlan",
    "RedirectTarget",
    "parse_command",
    "OutputFilter",
    "ProcessRunner",
    "BuildOutputFilter",
    "BuildRunner",
    "InteractiveTrigger",
]

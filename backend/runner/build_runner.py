"""
onchanged Build Runner.

Runs the build tool against the watched descriptor, highlights
compiler diagnostics, and runs follow-up commands after a successful
build.
Requires Python 3.11+.
"""

import shutil
from collections.abc import Callable, Sequence
from contextlib import AbstractContextManager
from pathlib import Path

from runner.command import CommandSpec
from runner.process_runner import OutputFilter, ProcessRunner
from utils import console
from utils.config import get_settings

TRUNCATION_NOTICE = "warning: further output excluded..."

# Rows kept free for the exit code and status lines
_RESERVED_ROWS = 2


class BuildOutputFilter(OutputFilter):
    """
    Colours warnings and errors and stops once they fill the terminal.

    Only the first screenful of diagnostics matters; after that the rest
    is replaced by a single notice.
    """

    def __init__(self, terminal_size: Callable[[], tuple[int, int]] | None = None) -> None:
        """
        Initialize the filter.

        Args:
            terminal_size: Returns (columns, rows); defaults to the real terminal
        """
        self._terminal_size = terminal_size or (lambda: tuple(shutil.get_terminal_size()))
        self._seen_diagnostic = False
        self._rows_used = _RESERVED_ROWS

    def reset(self) -> None:
        self._seen_diagnostic = False
        self._rows_used = _RESERVED_ROWS

    def __call__(self, line: str, is_stdout: bool, redirected: bool) -> str | None:
        columns, rows = self._terminal_size()
        columns = max(columns, 1)

        if self._rows_used >= rows:
            return None

        has_warning = ": warning " in line
        has_error = ": error " in line
        if has_warning or has_error:
            self._seen_diagnostic = True

        if self._seen_diagnostic:
            self._rows_used += (len(line) + columns - 1) // columns

        if has_error:
            line = console.colorize(line, console.RED)
        elif has_warning:
            line = console.colorize(line, console.YELLOW)

        if self._rows_used >= rows:
            line = console.colorize(TRUNCATION_NOTICE, console.YELLOW)
        return line


def _template_tokens(template: str, build_args: str, descriptor: Path) -> list[str]:
    """Expand the argument template into tokens; the descriptor is always one token."""
    tokens: list[str] = []
    for part in template.split():
        if part == "{args}":
            tokens.extend(build_args.split())
        else:
            tokens.append(part.format(args=build_args, descriptor=descriptor))
    return tokens


class BuildRunner(ProcessRunner):
    """
    Runs the build tool, then the follow-up runners if it succeeded.

    Follow-ups run in order and stop at the first failure. Share one
    run_lock between the build and its follow-ups so a key-triggered run
    cannot overlap a watch-triggered one. The lock is re-acquired by the
    follow-ups while the build holds it, so it must be reentrant.
    """

    def __init__(
        self,
        build_tool: Path,
        build_args: str,
        descriptor: Path,
        working_dir: Path,
        followups: Sequence[ProcessRunner] = (),
        run_lock: AbstractContextManager | None = None,
        argument_template: str | None = None,
        output_filter: OutputFilter | None = None,
    ) -> None:
        """
        Initialize the build runner.

        Args:
            build_tool: Resolved path of the build executable
            build_args: Extra arguments for the build tool
            descriptor: Root descriptor to build
            working_dir: Directory to run the build in
            followups: Runners to run after a successful build
            run_lock: Lock shared with the follow-up runners
            argument_template: Format string with {args} and {descriptor}
            output_filter: Line filter (BuildOutputFilter by default)
        """
        settings = get_settings()
        self._template = argument_template or settings.build.argument_template
        self._build_args = build_args.strip()
        self.followups = list(followups)

        command = CommandSpec(working_dir=working_dir, executable=str(build_tool))
        super().__init__(command, output_filter or BuildOutputFilter(), run_lock)
        self.set_descriptor(descriptor)

    def set_descriptor(self, descriptor: Path) -> None:
        """Point the build at a (possibly renamed) root descriptor."""
        self._descriptor = descriptor
        self._command.argument_list = _template_tokens(self._template, self._build_args, descriptor)

    @property
    def descriptor(self) -> Path:
        return self._descriptor

    def run(self, print_time: bool = False) -> int:
        """
        Build, and on success run each follow-up.

        Returns:
            The build's exit code
        """
        with self.run_lock:
            exit_code = super().run(print_time)
            if exit_code != 0:
                console.error("FAIL!")
                self.log.warning("build_failed", exit_code=exit_code)
                return exit_code

            for followup in self.followups:
                if followup.run(print_time) != 0:
                    break
            return exit_code

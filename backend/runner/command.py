"""
onchanged Commands.

Parses a command line with shell-style output redirection into a
CommandSpec and resolves its executable lazily.
Requires Python 3.11+.
"""

import os
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from utils.config import get_settings
from utils.paths import find_valid_path

# Reserved outcomes; real child exit codes are never negative here
EXIT_NOT_FOUND = -1
EXIT_NOT_STARTED = -2

# operator -> (source is stdout, append)
REDIRECT_OPERATORS: dict[str, tuple[bool, bool]] = {
    ">": (True, False),
    "1>": (True, False),
    ">>": (True, True),
    "1>>": (True, True),
    "2>": (False, False),
    "2>>": (False, True),
}


@dataclass(frozen=True, slots=True)
class RedirectTarget:
    """Where one output stream goes: a file, or the console when target_path is None."""

    target_path: Path | None
    append: bool
    source_is_stdout: bool

    @property
    def is_console(self) -> bool:
        return self.target_path is None

    @property
    def argument(self) -> str:
        """The redirection as it would be written on a command line."""
        if self.target_path is None:
            return ""
        source = "1" if self.source_is_stdout else "2"
        operator = ">>" if self.append else ">"
        return f" {source}{operator} {self.target_path}"


@dataclass
class RedirectPlan:
    """Ordered redirection targets for one source stream."""

    source_is_stdout: bool
    targets: list[RedirectTarget] = field(default_factory=list)

    @classmethod
    def console(cls, source_is_stdout: bool) -> "RedirectPlan":
        """A plan that sends the stream to the console only."""
        return cls(
            source_is_stdout=source_is_stdout,
            targets=[RedirectTarget(None, False, source_is_stdout)],
        )

    @property
    def file_targets(self) -> list[RedirectTarget]:
        return [t for t in self.targets if t.target_path is not None]

    @property
    def is_redirected(self) -> bool:
        """True if at least one target is a real file."""
        return bool(self.file_targets)

    @property
    def arguments(self) -> str:
        return "".join(t.argument for t in self.targets)


def _quote(arg: str) -> str:
    return f'"{arg}"' if " " in arg else arg


@dataclass
class CommandSpec:
    """
    A command to run: executable, argument tokens and redirection plans.

    Tokens are passed to the child as they are; the quoted argument string
    is only for display.

    The executable may be unresolved until the first run; once it has been
    resolved to an existing absolute path it is never searched for again.
    """

    working_dir: Path
    executable: str
    argument_list: list[str] = field(default_factory=list)
    stdout_plan: RedirectPlan = field(default_factory=lambda: RedirectPlan.console(True))
    stderr_plan: RedirectPlan = field(default_factory=lambda: RedirectPlan.console(False))
    _resolved: Path | None = field(default=None, init=False, repr=False)

    @property
    def resolved_executable(self) -> Path | None:
        return self._resolved

    def resolve_executable(
        self,
        search_path: bool | None = None,
        extensions: Sequence[str] | None = None,
    ) -> Path | None:
        """
        Find the executable on disk, caching the first hit.

        Tries the name as given (absolute; else relative to the working
        directory, then the current directory, then PATH for bare names),
        then, for names without an extension, the same search with each
        common executable extension appended.

        Args:
            search_path: Allow PATH lookup for bare names
            extensions: Extensions to try for names without one

        Returns:
            Absolute path to the executable, or None if not found
        """
        if self._resolved is not None:
            return self._resolved if self._resolved.is_file() else None

        settings = get_settings()
        if search_path is None:
            search_path = settings.runner.search_path
        if extensions is None:
            extensions = settings.runner.executable_extensions

        candidates = [self.executable]
        if not os.path.splitext(self.executable)[1]:
            candidates.extend(self.executable + ext for ext in extensions)

        for candidate in candidates:
            found = find_valid_path(
                candidate,
                self.working_dir,
                search_path=search_path,
                must_exist=True,
                must_be_file=True,
            )
            if found is not None:
                self._resolved = found.absolute()
                self.executable = str(self._resolved)
                return self._resolved

        return None

    @property
    def arguments(self) -> str:
        """Arguments as one string, tokens with spaces double-quoted."""
        return " ".join(_quote(arg) for arg in self.argument_list)

    def argv(self) -> list[str]:
        """Arguments for subprocess.Popen; requires a resolved executable."""
        return [str(self._resolved or self.executable), *self.argument_list]

    @property
    def description(self) -> str:
        """Human-readable summary printed before each run."""
        args = f" {self.arguments}" if self.arguments else ""
        return (
            f'{self.working_dir}>"{self.executable}"{args}'
            f"{self.stdout_plan.arguments}{self.stderr_plan.arguments}"
        )


def parse_command(working_dir: Path | str, argv: Sequence[str]) -> CommandSpec:
    """
    Build a CommandSpec from command-line tokens.

    The first token is the executable. Redirect operators (>, 1>, >>, 1>>,
    2>, 2>>) consume the following token as their target file; an operator
    with no target is dropped. Remaining tokens are the arguments, kept
    unsplit and unquoted. A stream with no redirection goes to the console.

    Args:
        working_dir: Directory to run the command in
        argv: Executable followed by its arguments

    Returns:
        The parsed command

    Raises:
        ValueError: If argv is empty
    """
    if not argv:
        raise ValueError("a command needs at least an executable")

    arguments: list[str] = []
    redirects: list[str] = []
    for arg in argv[1:]:
        expecting_target = len(redirects) % 2 == 1
        if expecting_target or arg in REDIRECT_OPERATORS:
            redirects.append(arg)
        else:
            arguments.append(arg)

    stdout_plan = RedirectPlan(source_is_stdout=True)
    stderr_plan = RedirectPlan(source_is_stdout=False)
    for operator, target in zip(redirects[0::2], redirects[1::2]):
        is_stdout, append = REDIRECT_OPERATORS[operator]
        plan = stdout_plan if is_stdout else stderr_plan
        plan.targets.append(RedirectTarget(Path(target), append, is_stdout))

    if not stdout_plan.targets:
        stdout_plan = RedirectPlan.console(True)
    if not stderr_plan.targets:
        stderr_plan = RedirectPlan.console(False)

    return CommandSpec(
        working_dir=Path(working_dir),
        executable=argv[0],
        argument_list=arguments,
        stdout_plan=stdout_plan,
        stderr_plan=stderr_plan,
    )

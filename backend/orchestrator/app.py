"""
onchanged Applications.

Wires the watcher, tracker, loop and runners into the two supervisory
programs: onchanged (run a command whenever a path changes) and
autobuild (rebuild a solution when any of its dependencies change,
then run a test command).
Requires Python 3.11+.
"""

import threading
from collections.abc import Sequence
from pathlib import Path

from dependency.tracker import DependencyTracker
from orchestrator.build_tool import locate_build_tool
from orchestrator.loop import OrchestrationLoop, watch_and_run
from runner.build_runner import BuildRunner
from runner.command import parse_command
from runner.process_runner import ProcessRunner
from runner.trigger import InteractiveTrigger
from utils import console
from utils.errors import FatalError
from utils.logger import get_logger
from utils.paths import find_valid_path, normalize_path
from watcher.change_notifier import ChangeNotifier
from watcher.debouncer import DebounceAggregator

logger = get_logger("app")

SOLUTION_SUFFIX = ".sln"


def split_build_args(raw: str) -> tuple[Path | None, str]:
    """
    Separate a descriptor path from the build tool arguments.

    Any whitespace-separated token naming an existing file is taken as
    the descriptor.

    Returns:
        (descriptor or None, remaining arguments)

    Raises:
        FatalError: If more than one token names an existing file
    """
    descriptor: Path | None = None
    args: list[str] = []
    for token in raw.strip().strip('"').split():
        if Path(token).is_file():
            if descriptor is not None:
                raise FatalError(f"error: more than one descriptor in build arguments: {token}")
            descriptor = normalize_path(token)
        else:
            args.append(token)
    return descriptor, " ".join(args)


def find_solution(directory: Path) -> Path | None:
    """Return the first solution file in a directory, by name."""
    solutions = sorted(p for p in directory.iterdir() if p.suffix == SOLUTION_SUFFIX and p.is_file())
    return solutions[0] if solutions else None


def run_onchanged(
    watch_path: str,
    command_argv: Sequence[str],
    delay_ms: int | None = None,
    working_dir: Path | None = None,
    iterations: int | None = None,
) -> None:
    """
    Run a command every time a file or directory changes.

    Args:
        watch_path: Existing file or directory to watch
        command_argv: Command and arguments, with optional redirections
        delay_ms: Debounce quiet period in milliseconds
        working_dir: Directory to run the command in (cwd by default)
        iterations: Stop after this many runs (forever if None)

    Raises:
        FatalError: If the watch path or executable is invalid
    """
    working_dir = working_dir or Path.cwd()

    path = find_valid_path(watch_path, working_dir, must_exist=True)
    if path is None:
        raise FatalError(f"error: the watch path must be an existing, valid path: {watch_path}")
    path = normalize_path(path)

    command = parse_command(working_dir, command_argv)
    if command.resolve_executable() is None:
        raise FatalError(f"error: the command must start with an executable file: {command_argv[0]}")

    console.header(f"Watching: {path}")
    console.header(f"Command:  {command.description}")

    aggregator = DebounceAggregator(quiet_period_ms=delay_ms)
    notifier = ChangeNotifier(aggregator)
    if not notifier.register(path):
        raise FatalError(f"error: could not watch {path}")

    runner = ProcessRunner(command)
    trigger = InteractiveTrigger(default=lambda: runner.run(print_time=True))

    aggregator.start()
    trigger.start()
    notifier.enable(True)
    logger.info("onchanged_started", path=str(path), command=command.description)

    try:
        watch_and_run(aggregator, lambda: runner.run(print_time=True), iterations)
    finally:
        trigger.stop()
        notifier.stop()
        aggregator.stop()


def run_autobuild(
    build_args: str = "",
    test_argv: Sequence[str] = (),
    test_working_dir: Path | None = None,
    delay_ms: int | None = None,
    iterations: int | None = None,
) -> None:
    """
    Rebuild a solution whenever it or any of its dependencies change.

    Args:
        build_args: Build tool arguments, optionally naming the descriptor
        test_argv: Test command to run after each successful build
        test_working_dir: Directory to run the test command in
        delay_ms: Debounce quiet period in milliseconds
        iterations: Stop after this many builds (forever if None)

    Raises:
        FatalError: If no descriptor or build tool can be found, or the
            root descriptor becomes unusable
    """
    cwd = Path.cwd()
    descriptor, extra_args = split_build_args(build_args)
    if descriptor is None:
        descriptor = find_solution(cwd)
        if descriptor is None:
            raise FatalError(
                "error: no solution provided in build arguments, and could not find\n"
                f"       any '{SOLUTION_SUFFIX}' files in the current working directory."
            )

    build_tool = locate_build_tool()

    # One reentrant lock for every run, whether triggered by a change or a key
    run_lock = threading.RLock()

    followups: list[ProcessRunner] = []
    if test_argv:
        # The test executable is usually produced by the build, so it is
        # only resolved on its first run.
        test = ProcessRunner(parse_command(test_working_dir or cwd, test_argv), run_lock=run_lock)
        followups.append(test)
        console.header("Test command:")
        console.write_line(f"    {test.description}")

    build = BuildRunner(build_tool, extra_args, descriptor, cwd, followups=followups, run_lock=run_lock)

    aggregator = DebounceAggregator(quiet_period_ms=delay_ms)
    notifier = ChangeNotifier(aggregator)
    tracker = DependencyTracker(notifier)
    loop = OrchestrationLoop(tracker, aggregator, descriptor)

    def rebuild() -> int:
        with run_lock:
            build.set_descriptor(loop.graph.root)
            return build.run(print_time=True)

    trigger = InteractiveTrigger(
        bindings={"b": rebuild},
        default=(lambda: followups[0].run(print_time=True)) if followups else rebuild,
    )

    aggregator.start()
    try:
        loop.start()
        trigger.start()
        logger.info("autobuild_started", descriptor=str(descriptor), build_tool=str(build_tool))
        loop.run(rebuild, iterations)
    finally:
        trigger.stop()
        notifier.stop()
        aggregator.stop()

"""
onchanged Process Runner.

Runs a CommandSpec as a child process, streams its stdout and stderr
line by line through an output filter, and writes each line to the
console or to the redirect target files.
Requires Python 3.11+.
"""

import subprocess
import threading
from contextlib import AbstractContextManager
from pathlib import Path
from typing import IO, TextIO

from runner.command import EXIT_NOT_FOUND, EXIT_NOT_STARTED, CommandSpec, RedirectPlan
from utils import console
from utils.logger import LoggerMixin


class OutputFilter:
    """
    Hook applied to every output line before it is shown or written.

    Subclasses may keep per-run state; reset() is called at the start of
    every run. Returning None drops the line everywhere.
    """

    def reset(self) -> None:
        """Forget state from the previous run."""

    def __call__(self, line: str, is_stdout: bool, redirected: bool) -> str | None:
        return line


class RedirectWriter:
    """One open redirect target file; writes are serialised."""

    def __init__(self, path: Path, append: bool) -> None:
        self.path = path
        self._file: TextIO = path.open("a" if append else "w", encoding="utf-8")
        self._lock = threading.Lock()

    def write_line(self, line: str) -> None:
        with self._lock:
            self._file.write(line + "\n")
            self._file.flush()

    def close(self) -> None:
        with self._lock:
            self._file.close()


class ProcessRunner(LoggerMixin):
    """
    Runs one command, waiting for it to finish.

    Runs are serialised through run_lock; pass the same lock to several
    runners to keep them from ever overlapping.
    """

    def __init__(
        self,
        command: CommandSpec,
        output_filter: OutputFilter | None = None,
        run_lock: AbstractContextManager | None = None,
    ) -> None:
        """
        Initialize the runner.

        Args:
            command: Command to run
            output_filter: Per-run line filter
            run_lock: Lock held for the duration of each run
        """
        self._command = command
        self._filter = output_filter or OutputFilter()
        self._filter_lock = threading.Lock()
        self._run_lock = run_lock if run_lock is not None else threading.RLock()

    @property
    def command(self) -> CommandSpec:
        return self._command

    @property
    def description(self) -> str:
        return self._command.description

    @property
    def run_lock(self) -> AbstractContextManager:
        return self._run_lock

    def run(self, print_time: bool = False) -> int:
        """
        Run the command to completion.

        Args:
            print_time: Prefix the command header with a timestamp

        Returns:
            The child's exit code, or EXIT_NOT_FOUND / EXIT_NOT_STARTED
        """
        with self._run_lock:
            return self._run(print_time)

    def _run(self, print_time: bool) -> int:
        command = self._command
        if command.resolve_executable() is None:
            self.log.warning("executable_not_found", executable=command.executable)
            console.error(f"error: specified executable not found: {command.executable}")
            return EXIT_NOT_FOUND

        self._filter.reset()
        prefix = f"{console.timestamp()}: " if print_time else ""
        console.header(prefix + command.description)

        writers: dict[Path, RedirectWriter] = {}
        try:
            stdout_writers = self._open_targets(command.stdout_plan, writers)
            stderr_writers = self._open_targets(command.stderr_plan, writers)
        except OSError as e:
            self._close(writers)
            self.log.error("redirect_open_failed", error=str(e))
            console.error(f"error: could not open redirect target: {e}")
            return EXIT_NOT_STARTED

        try:
            proc = subprocess.Popen(
                command.argv(),
                cwd=str(command.working_dir),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except (OSError, ValueError) as e:
            # ValueError: arguments the OS cannot pass, e.g. NUL bytes
            self._close(writers)
            self.log.error("process_start_failed", executable=command.executable, error=str(e))
            console.error(f"error: could not execute command: {command.executable}")
            return EXIT_NOT_STARTED

        self.log.info("process_started", pid=proc.pid, executable=command.executable)

        pumps = [
            threading.Thread(
                target=self._pump,
                args=(proc.stdout, True, stdout_writers),
                name="stdout-pump",
                daemon=True,
            ),
            threading.Thread(
                target=self._pump,
                args=(proc.stderr, False, stderr_writers),
                name="stderr-pump",
                daemon=True,
            ),
        ]
        for pump in pumps:
            pump.start()

        try:
            exit_code = proc.wait()
            for pump in pumps:
                pump.join()
        finally:
            self._close(writers)

        self.log.info("process_exited", pid=proc.pid, exit_code=exit_code)
        console.header(f"exit code = {exit_code}")
        return exit_code

    def _open_targets(
        self, plan: RedirectPlan, writers: dict[Path, RedirectWriter]
    ) -> list[RedirectWriter]:
        opened: list[RedirectWriter] = []
        for target in plan.file_targets:
            assert target.target_path is not None
            path = (self._command.working_dir / target.target_path).absolute()
            # Both streams redirected to one file share a writer
            if path not in writers:
                writers[path] = RedirectWriter(path, target.append)
            opened.append(writers[path])
        return opened

    @staticmethod
    def _close(writers: dict[Path, RedirectWriter]) -> None:
        for writer in writers.values():
            writer.close()
        writers.clear()

    def _pump(self, stream: IO[str], is_stdout: bool, writers: list[RedirectWriter]) -> None:
        redirected = bool(writers)
        with stream:
            for raw in stream:
                line = raw.rstrip("\r\n")
                if not line:
                    continue

                with self._filter_lock:
                    filtered = self._filter(line, is_stdout, redirected)
                if not filtered:
                    continue

                if redirected:
                    plain = console.strip_escape_codes(filtered)
                    for writer in writers:
                        writer.write_line(plain)
                else:
                    console.write_line(filtered)

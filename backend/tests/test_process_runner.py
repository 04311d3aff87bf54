"""
Tests for the Process Runner.

Child processes are the running Python interpreter with inline code.
Requires Python 3.11+.
"""

import re
import subprocess
import threading
from pathlib import Path

import pytest

import runner.process_runner as process_runner
from runner.command import EXIT_NOT_FOUND, parse_command
from runner.process_runner import OutputFilter, ProcessRunner
from utils.console import strip_escape_codes

GREETING = "import sys; print('to out'); print('to err', file=sys.stderr)"


def runner_for(tmp_path: Path, python_command: list[str], code: str, *redirects: str, **kwargs) -> ProcessRunner:
    return ProcessRunner(parse_command(tmp_path, [*python_command, code, *redirects]), **kwargs)


class UpperFilter(OutputFilter):
    """Upper-cases stdout and drops stderr."""

    def __init__(self) -> None:
        self.resets = 0

    def reset(self) -> None:
        self.resets += 1

    def __call__(self, line: str, is_stdout: bool, redirected: bool) -> str | None:
        return line.upper() if is_stdout else None


class TestProcessRunner:
    """Test cases for ProcessRunner.run."""

    def test_exit_code(self, tmp_path: Path, python_command: list[str]):
        """Test the child's exit code is returned."""
        runner = runner_for(tmp_path, python_command, "import sys; sys.exit(3)")

        assert runner.run() == 3

    def test_console_output(self, tmp_path: Path, python_command: list[str], capsys: pytest.CaptureFixture):
        """Test unredirected lines reach the console with header and exit line."""
        runner = runner_for(tmp_path, python_command, GREETING)

        assert runner.run() == 0

        out = capsys.readouterr().out
        assert "to out" in out
        assert "to err" in out
        assert "exit code = 0" in out

    def test_print_time_prefixes_header(self, tmp_path: Path, python_command: list[str], capsys: pytest.CaptureFixture):
        """Test the header carries a timestamp when asked."""
        runner = runner_for(tmp_path, python_command, "pass")
        runner.run(print_time=True)

        first_line = strip_escape_codes(capsys.readouterr().out.splitlines()[0])
        assert re.match(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{3}: ", first_line)

    def test_redirect_to_files(self, tmp_path: Path, python_command: list[str], capsys: pytest.CaptureFixture):
        """Test each stream goes to its own file and not the console."""
        runner = runner_for(tmp_path, python_command, GREETING, ">", "out.txt", "2>", "err.txt")

        assert runner.run() == 0

        assert (tmp_path / "out.txt").read_text() == "to out\n"
        assert (tmp_path / "err.txt").read_text() == "to err\n"
        out = capsys.readouterr().out
        assert "to out" not in out.splitlines()

    def test_append_mode(self, tmp_path: Path, python_command: list[str]):
        """Test >> appends while > truncates."""
        (tmp_path / "log.txt").write_text("previous\n")
        (tmp_path / "fresh.txt").write_text("stale\n")

        runner_for(tmp_path, python_command, "print('next')", ">>", "log.txt").run()
        runner_for(tmp_path, python_command, "print('next')", ">", "fresh.txt").run()

        assert (tmp_path / "log.txt").read_text() == "previous\nnext\n"
        assert (tmp_path / "fresh.txt").read_text() == "next\n"

    def test_both_streams_to_one_file(self, tmp_path: Path, python_command: list[str]):
        """Test stdout and stderr may share a target file."""
        runner = runner_for(tmp_path, python_command, GREETING, ">", "all.txt", "2>>", "all.txt")
        runner.run()

        assert sorted((tmp_path / "all.txt").read_text().splitlines()) == ["to err", "to out"]

    def test_escape_codes_stripped_in_files(self, tmp_path: Path, python_command: list[str]):
        """Test colour sequences never reach redirect files."""
        code = "print(chr(27)+'[91mred'+chr(27)+'[0m')"
        runner_for(tmp_path, python_command, code, ">", "colour.txt").run()

        assert (tmp_path / "colour.txt").read_text() == "red\n"

    def test_blank_lines_skipped(self, tmp_path: Path, python_command: list[str]):
        """Test empty output lines are not written."""
        runner_for(tmp_path, python_command, "print('a'); print(); print('b')", ">", "o.txt").run()

        assert (tmp_path / "o.txt").read_text() == "a\nb\n"

    def test_filter_applies_and_drops(self, tmp_path: Path, python_command: list[str]):
        """Test filter output is what gets written and None drops a line."""
        output_filter = UpperFilter()
        runner = runner_for(
            tmp_path, python_command, GREETING, ">", "o.txt", "2>", "e.txt", output_filter=output_filter
        )

        runner.run()
        runner.run()

        assert (tmp_path / "o.txt").read_text() == "TO OUT\n"
        assert (tmp_path / "e.txt").read_text() == ""
        assert output_filter.resets == 2

    def test_executable_not_found(self, tmp_path: Path, capsys: pytest.CaptureFixture):
        """Test a missing executable reports and returns the reserved code."""
        runner = ProcessRunner(parse_command(tmp_path, ["no-such-program-here", "x"]))

        assert runner.run() == EXIT_NOT_FOUND
        assert "specified executable not found" in capsys.readouterr().err

    def test_shared_lock_serialises_runs(self, tmp_path: Path, python_command: list[str]):
        """Test runners sharing a lock never run at the same time."""
        lock = threading.RLock()
        code = "import time; print('start'); time.sleep(0.2); print('end')"
        runners = [
            runner_for(tmp_path, python_command, code, ">>", "shared.txt", run_lock=lock) for _ in range(2)
        ]

        threads = [threading.Thread(target=r.run) for r in runners]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert (tmp_path / "shared.txt").read_text().splitlines() == ["start", "end", "start", "end"]

    def test_quotes_reach_the_child_intact(self, tmp_path: Path, python_command: list[str]):
        """Test arguments containing quotes are passed through unchanged."""
        runner_for(tmp_path, python_command, "print('hi')", ">", "quoted.txt").run()

        assert (tmp_path / "quoted.txt").read_text() == "hi\n"

    def test_unbalanced_apostrophe_argument(self, tmp_path: Path, python_command: list[str]):
        """Test a lone apostrophe in an argument is passed as written."""
        code = "import sys; print(sys.argv[1])"
        runner = ProcessRunner(
            parse_command(tmp_path, [*python_command, code, "--name=O'Brien", ">", "name.txt"])
        )

        assert runner.run() == 0
        assert (tmp_path / "name.txt").read_text() == "--name=O'Brien\n"

    def test_argument_with_spaces_and_quotes(self, tmp_path: Path, python_command: list[str]):
        """Test one token with spaces and double quotes stays one argument."""
        code = "import sys; print(len(sys.argv), sys.argv[1])"
        runner = ProcessRunner(
            parse_command(tmp_path, [*python_command, code, 'say "hello there"', ">", "args.txt"])
        )
        runner.run()

        assert (tmp_path / "args.txt").read_text() == '2 say "hello there"\n'

    def test_redirect_files_closed_when_wait_fails(
        self, tmp_path: Path, python_command: list[str], monkeypatch: pytest.MonkeyPatch
    ):
        """Test redirect targets are closed even if waiting for the child is interrupted."""
        closed: list[Path] = []
        real_close = process_runner.RedirectWriter.close

        def recording_close(writer: process_runner.RedirectWriter) -> None:
            closed.append(writer.path)
            real_close(writer)

        def interrupted_wait(proc: subprocess.Popen, timeout: float | None = None) -> int:
            raise RuntimeError("interrupted")

        monkeypatch.setattr(process_runner.RedirectWriter, "close", recording_close)
        monkeypatch.setattr(subprocess.Popen, "wait", interrupted_wait)
        runner = runner_for(tmp_path, python_command, "pass", ">", "out.txt")

        with pytest.raises(RuntimeError):
            runner.run()

        assert closed == [(tmp_path / "out.txt").absolute()]

"""
onchanged Test Configuration.

Pytest fixtures and configuration.
Requires Python 3.11+.
"""

import sys
import textwrap
from collections.abc import Generator
from pathlib import Path

import pytest

from watcher.debouncer import DebounceAggregator

SOLUTION_FOLDER_KIND = "2150E333-8FDC-42A3-9474-1A3956D46DE8"
CSHARP_PROJECT_KIND = "FAE04EC0-301F-11D3-BF4B-00C04F79EFBC"


class RecordingNotifier:
    """Stand-in for ChangeNotifier that records what it is asked to watch."""

    def __init__(self) -> None:
        self.registered: list[Path] = []
        self.enabled = False
        self.clear_count = 0

    def register(self, path: Path) -> bool:
        self.registered.append(Path(path))
        return True

    def unregister_all(self) -> None:
        self.enabled = False
        self.registered.clear()
        self.clear_count += 1

    def enable(self, enabled: bool) -> None:
        self.enabled = enabled


def project_xml(*includes: str) -> str:
    """Minimal project file referencing the given paths."""
    items = "\n".join(f'    <Compile Include="{inc}" />' for inc in includes)
    return textwrap.dedent(
        """\
        <?xml version="1.0" encoding="utf-8"?>
        <Project ToolsVersion="15.0" xmlns="http://schemas.microsoft.com/developer/msbuild/2003">
          <ItemGroup>
        {items}
          </ItemGroup>
        </Project>
        """
    ).format(items=items)


def solution_text(*projects: tuple[str, str, str]) -> str:
    """Minimal solution file listing (kind, name, relative path) projects."""
    lines = [
        "Microsoft Visual Studio Solution File, Format Version 12.00",
        "# Visual Studio 15",
    ]
    for index, (kind, name, rel_path) in enumerate(projects):
        guid = f"{{00000000-0000-0000-0000-{index:012d}}}"
        lines.append(f'Project("{{{kind}}}") = "{name}", "{rel_path}", "{guid}"')
        lines.append("EndProject")
    lines.append("Global")
    lines.append("EndGlobal")
    return "\n".join(lines) + "\n"


@pytest.fixture
def notifier() -> RecordingNotifier:
    """A notifier that only records registrations."""
    return RecordingNotifier()


@pytest.fixture
def project_tree(tmp_path: Path) -> Path:
    """
    A single project with two sources and a missing reference.

    Returns the project file path.
    """
    src = tmp_path / "src"
    src.mkdir()
    (src / "main.c").write_text("int main(void) { return 0; }\n")
    (src / "util.c").write_text("int util(void) { return 1; }\n")

    project = tmp_path / "app.proj"
    project.write_text(project_xml("src\\main.c", "src/util.c", "src\\missing.c"))
    return project


@pytest.fixture
def solution_tree(tmp_path: Path) -> Path:
    """
    A solution with two projects and a solution folder.

    Returns the solution file path.
    """
    for name, source in (("core", "core.cs"), ("app", "program.cs")):
        project_dir = tmp_path / name
        project_dir.mkdir()
        (project_dir / source).write_text("// source\n")
        (project_dir / f"{name}.csproj").write_text(project_xml(source))

    solution = tmp_path / "all.sln"
    solution.write_text(
        solution_text(
            (CSHARP_PROJECT_KIND, "core", "core\\core.csproj"),
            (SOLUTION_FOLDER_KIND, "Solution Items", "Solution Items"),
            (CSHARP_PROJECT_KIND, "app", "app\\app.csproj"),
        )
    )
    return solution


@pytest.fixture
def aggregator() -> Generator[DebounceAggregator, None, None]:
    """A started aggregator with a short quiet period."""
    agg = DebounceAggregator(quiet_period_ms=50)
    agg.start()
    yield agg
    agg.stop()


@pytest.fixture
def python_command() -> list[str]:
    """Executable prefix for running inline Python in a child process."""
    return [sys.executable, "-c"]

"""
onchanged Path Helpers.

Path normalisation and the relative-then-PATH lookup used both for
watch paths and for command executables.
Requires Python 3.11+.
"""

import os
from collections.abc import Iterable
from pathlib import Path


def normalize_path(path: Path | str) -> Path:
    """Return an absolute, symlink-resolved path usable as a change key."""
    return Path(path).expanduser().resolve()


def compose_path(base_dir: Path, relative: str) -> Path:
    """
    Join a descriptor-relative reference onto its directory.

    Descriptors written on Windows use backslash separators; these are
    translated on platforms where the backslash is not a separator.

    Raises:
        ValueError: If the reference cannot form a path (e.g. NUL bytes)
    """
    if "\0" in relative:
        raise ValueError(f"invalid path characters in {relative!r}")
    if os.sep != "\\":
        relative = relative.replace("\\", os.sep)
    return normalize_path(base_dir / relative)


def _acceptable(candidate: Path, must_exist: bool, must_be_file: bool) -> bool:
    if not must_exist:
        return True
    if candidate.is_file():
        return True
    return not must_be_file and candidate.is_dir()


def find_valid_path(
    path: str,
    working_dir: Path | None,
    *,
    search_path: bool = False,
    must_exist: bool = True,
    must_be_file: bool = False,
    path_dirs: Iterable[str] | None = None,
) -> Path | None:
    """
    Locate a path the way a shell would for a command name.

    Search order: the path itself if absolute; otherwise relative to
    working_dir, then relative to the current directory, then (only when
    search_path is set and the name has no directory component) each
    directory on PATH.

    Returns:
        The first acceptable candidate, or None
    """
    try:
        given = Path(path)
        if given.is_absolute():
            return given if _acceptable(given, must_exist, must_be_file) else None

        candidates: list[Path] = []
        if working_dir is not None:
            candidates.append(Path(working_dir) / given)
        candidates.append(Path.cwd() / given)

        if search_path and os.path.dirname(path) == "":
            if path_dirs is None:
                path_dirs = os.environ.get("PATH", "").split(os.pathsep)
            candidates.extend(Path(d) / given for d in path_dirs if d)

        for candidate in candidates:
            if _acceptable(candidate, must_exist, must_be_file):
                return candidate
    except (ValueError, OSError):
        # e.g. invalid path characters in string
        pass
    return None

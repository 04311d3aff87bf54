"""
onchanged Errors.

Exception hierarchy shared by the watcher, tracker and runner packages.
Requires Python 3.11+.
"""

from pathlib import Path


class OnChangedError(Exception):
    """Base class for all onchanged errors."""


class FatalError(OnChangedError):
    """An error the supervisory loop cannot continue after."""


class DescriptorParseError(OnChangedError):
    """A descriptor could not be read or parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"could not parse '{path}': {reason}")
        self.path = path
        self.reason = reason


class RootDescriptorError(FatalError):
    """The root descriptor is missing or unparseable."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"error: cannot watch '{path}': {reason}")
        self.path = path


class RootDeletedError(FatalError):
    """The root descriptor was deleted while being watched."""

    def __init__(self, path: Path) -> None:
        super().__init__(
            f"Solution '{path}' was deleted; you must restart to use a different solution."
        )
        self.path = path


class BuildToolNotFoundError(FatalError):
    """The build tool executable could not be located."""

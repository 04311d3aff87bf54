"""
onchanged Dependency Data Models.

Structures describing what a solution/project descriptor tree asks us
to watch.
Requires Python 3.11+.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class PathRole(str, Enum):
    """Role a watched path plays in the dependency graph."""

    ROOT = "root"
    STRUCTURAL = "structural"
    LEAF = "leaf"


@dataclass(frozen=True, slots=True)
class DescriptorReference:
    """One sub-descriptor reference found in a container descriptor."""

    kind: str
    relative_path: str


@dataclass
class DependencyGraph:
    """
    Paths discovered from one root descriptor.

    Structural paths are descriptors whose change can alter the watch
    set; leaf paths are sources whose change only calls for a rebuild.
    """

    root: Path
    structural_paths: set[Path] = field(default_factory=set)
    leaf_paths: set[Path] = field(default_factory=set)

    def role_of(self, path: Path) -> PathRole | None:
        """Classify a path against the graph."""
        if path == self.root:
            return PathRole.ROOT
        if path in self.structural_paths:
            return PathRole.STRUCTURAL
        if path in self.leaf_paths:
            return PathRole.LEAF
        return None

    def rename_root(self, new_root: Path) -> None:
        """Follow a rename of the root descriptor."""
        self.root = new_root

    @property
    def watched_paths(self) -> set[Path]:
        """Every path the graph asks to watch, root included."""
        return {self.root} | self.structural_paths | self.leaf_paths

    @property
    def dependency_count(self) -> int:
        return len(self.structural_paths) + len(self.leaf_paths)

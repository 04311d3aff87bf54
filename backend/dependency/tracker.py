"""
onchanged Dependency Tracker.

Discovers the set of paths to watch from a root solution or project
descriptor and registers them with the change notifier. Discovery is
destructive: every run clears the previous watch set and rebuilds it
from scratch.
Requires Python 3.11+.
"""

from pathlib import Path

from dependency.descriptor_parser import DescriptorParser
from dependency.models import DependencyGraph
from utils import console
from utils.config import get_settings
from utils.errors import DescriptorParseError, RootDescriptorError
from utils.logger import LoggerMixin
from utils.paths import compose_path, normalize_path
from watcher.change_notifier import ChangeNotifier


def _display_path(path: Path) -> str:
    try:
        return str(Path(".") / path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


class DependencyTracker(LoggerMixin):
    """
    Builds DependencyGraphs and keeps the notifier's watch set in sync.

    A container root (a solution listing projects) makes every accepted
    project reference structural. A root without references is read as a
    project itself. Leaf references that are themselves descriptors are
    followed recursively.
    """

    def __init__(
        self,
        notifier: ChangeNotifier,
        parser: DescriptorParser | None = None,
        ignored_reference_kinds: list[str] | None = None,
        descriptor_suffixes: list[str] | None = None,
    ) -> None:
        """
        Initialize the tracker.

        Args:
            notifier: Notifier to register discovered paths with
            parser: Descriptor parser
            ignored_reference_kinds: Container reference kinds to skip
            descriptor_suffixes: Suffixes of leaf references parsed as descriptors
        """
        settings = get_settings()
        if ignored_reference_kinds is None:
            ignored_reference_kinds = settings.descriptor.ignored_reference_kinds
        if descriptor_suffixes is None:
            descriptor_suffixes = settings.descriptor.descriptor_suffixes

        self._notifier = notifier
        self._parser = parser or DescriptorParser()
        self._ignored_kinds = {kind.strip("{}").upper() for kind in ignored_reference_kinds}
        self._descriptor_suffixes = {suffix.lower() for suffix in descriptor_suffixes}

    def discover(self, root: Path | str) -> DependencyGraph:
        """
        Rebuild the watch set from a root descriptor.

        Args:
            root: Root descriptor path

        Returns:
            The freshly built dependency graph

        Raises:
            RootDescriptorError: If the root cannot be read or parsed
        """
        root = normalize_path(root)
        self._notifier.unregister_all()
        graph = DependencyGraph(root=root)

        console.header("Solution to watch:")
        console.write_line(f"    {_display_path(root)}")

        if not root.is_file():
            raise RootDescriptorError(root, "file not found")

        self._notifier.register(root)

        try:
            references = self._parser.container_references(root)
        except DescriptorParseError as e:
            raise RootDescriptorError(root, e.reason) from e

        visited = {root}
        if references:
            for reference in references:
                if reference.kind.upper() in self._ignored_kinds:
                    self.log.debug("reference_ignored", kind=reference.kind, path=reference.relative_path)
                    continue
                try:
                    path = compose_path(root.parent, reference.relative_path)
                except ValueError as e:
                    self.log.warning("invalid_reference", path=reference.relative_path, error=str(e))
                    continue
                self._add_descriptor(path, graph, visited)
        else:
            # No references found, maybe this is a project file
            try:
                self._collect_leaves(root, graph, visited)
            except DescriptorParseError as e:
                raise RootDescriptorError(root, e.reason) from e

        self._print_dependencies(graph)
        self._notifier.enable(True)

        self.log.info(
            "discovery_completed",
            root=str(root),
            structural=len(graph.structural_paths),
            leaves=len(graph.leaf_paths),
        )
        return graph

    def _add_descriptor(self, path: Path, graph: DependencyGraph, visited: set[Path]) -> None:
        if path in visited:
            return
        visited.add(path)

        graph.structural_paths.add(path)
        graph.leaf_paths.discard(path)
        self._notifier.register(path)

        try:
            self._collect_leaves(path, graph, visited)
        except DescriptorParseError as e:
            self.log.warning("descriptor_parse_failed", path=str(path), reason=e.reason)
            console.warning(f"warning: {e}")

    def _collect_leaves(self, descriptor: Path, graph: DependencyGraph, visited: set[Path]) -> None:
        for value in self._parser.leaf_references(descriptor):
            try:
                path = compose_path(descriptor.parent, value)
            except (ValueError, OSError):
                continue
            if not path.is_file():
                continue

            if path.suffix.lower() in self._descriptor_suffixes:
                self._add_descriptor(path, graph, visited)
            elif path not in visited and path not in graph.leaf_paths:
                graph.leaf_paths.add(path)
                self._notifier.register(path)

    def _print_dependencies(self, graph: DependencyGraph) -> None:
        if graph.dependency_count == 0:
            return
        console.header("Dependencies to watch:")
        for path in sorted(graph.structural_paths):
            console.write_line(f"    {_display_path(path)}")
        for path in sorted(graph.leaf_paths):
            console.write_line(f"    {_display_path(path)}")

"""
onchanged Orchestration Loop.

Turns debounced change batches into reparse and rebuild decisions
against the current dependency graph.
Requires Python 3.11+.
"""

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from dependency.models import DependencyGraph, PathRole
from dependency.tracker import DependencyTracker
from utils.errors import RootDeletedError
from utils.logger import LoggerMixin, get_logger
from watcher.debouncer import ChangeBatch, ChangeType, DebounceAggregator

logger = get_logger("orchestrator")


@dataclass
class ChangeDecision:
    """What a batch of changes asks the loop to do."""

    root: Path
    reparse: bool = False
    rebuild: bool = False


def classify_batch(graph: DependencyGraph, batch: ChangeBatch) -> ChangeDecision:
    """
    Decide whether a batch requires rediscovery and/or a rebuild.

    Renames and deletions of structural and leaf paths are deliberately
    ignored: the next reparse of the root drops or re-resolves them.

    Args:
        graph: Current dependency graph
        batch: Changes from one debounce window

    Returns:
        The decision, carrying the (possibly renamed) root

    Raises:
        RootDeletedError: If the root descriptor was deleted
    """
    decision = ChangeDecision(root=graph.root)

    for path, record in batch.items():
        role = graph.role_of(path)

        if role is PathRole.ROOT:
            if record.change_type is ChangeType.DELETED:
                raise RootDeletedError(path)
            if record.change_type is ChangeType.RENAMED:
                decision.root = record.new_path
            decision.reparse = True
            decision.rebuild = True
        elif role is PathRole.STRUCTURAL:
            if record.change_type is ChangeType.CHANGED:
                decision.reparse = True
                decision.rebuild = True
        elif record.change_type is ChangeType.CHANGED:
            decision.rebuild = True

    return decision


class OrchestrationLoop(LoggerMixin):
    """
    Waits for changes and decides when to rebuild.

    Rediscovery always completes before control returns for a rebuild,
    so a rebuild never runs against a stale watch set.
    """

    def __init__(self, tracker: DependencyTracker, aggregator: DebounceAggregator, root: Path) -> None:
        """
        Initialize the loop.

        Args:
            tracker: Tracker used for (re)discovery
            aggregator: Source of change batches
            root: Root descriptor path
        """
        self._tracker = tracker
        self._aggregator = aggregator
        self._root = root
        self._graph: DependencyGraph | None = None

    @property
    def graph(self) -> DependencyGraph:
        if self._graph is None:
            raise RuntimeError("start() has not been called")
        return self._graph

    def start(self) -> DependencyGraph:
        """Run the initial discovery."""
        self._graph = self._tracker.discover(self._root)
        return self._graph

    def wait_for_rebuild(self) -> None:
        """Block until a batch asks for a rebuild, reparsing along the way."""
        while True:
            batch = self._aggregator.await_batch()
            if batch is None:
                continue

            decision = classify_batch(self.graph, batch)
            self.log.info(
                "batch_classified",
                changes=len(batch),
                reparse=decision.reparse,
                rebuild=decision.rebuild,
            )

            if decision.root != self.graph.root:
                self.log.info("root_renamed", old=str(self.graph.root), new=str(decision.root))
                self.graph.rename_root(decision.root)
                self._root = decision.root

            if decision.reparse:
                self._graph = self._tracker.discover(self.graph.root)

            if decision.rebuild:
                return

    def run(self, action: Callable[[], int], iterations: int | None = None) -> None:
        """
        Discover, then rebuild on every relevant change.

        Args:
            action: Rebuild action, called once per triggering batch
            iterations: Stop after this many rebuilds (forever if None)
        """
        if self._graph is None:
            self.start()

        count = 0
        while iterations is None or count < iterations:
            self.wait_for_rebuild()
            action()
            count += 1


def watch_and_run(
    aggregator: DebounceAggregator,
    action: Callable[[], int],
    iterations: int | None = None,
) -> None:
    """
    Run an action once per debounced batch, whatever changed.

    Args:
        aggregator: Source of change batches
        action: Action to run
        iterations: Stop after this many runs (forever if None)
    """
    count = 0
    while iterations is None or count < iterations:
        batch = aggregator.await_batch()
        if batch is None:
            continue
        logger.info("changes_observed", count=len(batch))
        action()
        count += 1

"""
onchanged Debouncer.

Coalesces raw, duplicate-prone change notifications into one batch
per quiet period.
Requires Python 3.11+.
"""

import queue
import threading
import time
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path

from utils.config import get_settings
from utils.logger import LoggerMixin


class ChangeType(IntEnum):
    """
    Kinds of change notification.

    The integer order is the merge precedence: within one window a later
    notification only replaces an earlier one of strictly lower value.
    """

    CHANGED = 0
    RENAMED = 1
    DELETED = 2

    @property
    def label(self) -> str:
        return self.name.capitalize()


@dataclass(slots=True)
class ChangeRecord:
    """The surviving change for one path within a window."""

    change_type: ChangeType
    new_path: Path


@dataclass(frozen=True, slots=True)
class RawChange:
    """A notification as delivered by a notification source."""

    path: Path
    change_type: ChangeType
    new_path: Path | None = None


ChangeBatch = dict[Path, ChangeRecord]

# Wakes the pump thread so it can exit
_STOP = object()


class DebounceAggregator(LoggerMixin):
    """
    Accumulates changes and hands them out one batch at a time.

    Notification sources either call merge() directly or submit() into a
    bounded queue that a single pump thread drains into merge(). The
    consumer blocks in await_batch(), which waits for the first change,
    then for a fixed quiet period, then takes everything accumulated.
    """

    def __init__(self, quiet_period_ms: int | None = None, queue_size: int | None = None) -> None:
        """
        Initialize the aggregator.

        Args:
            quiet_period_ms: Delay after the first change before handing out a batch
            queue_size: Bound of the raw notification queue
        """
        settings = get_settings()
        if quiet_period_ms is None:
            quiet_period_ms = settings.watcher.debounce_delay_ms
        if queue_size is None:
            queue_size = settings.watcher.queue_size

        self._quiet_period = quiet_period_ms / 1000.0
        self._pending: ChangeBatch = {}
        self._lock = threading.Lock()
        self._ready = threading.Event()
        self._queue: queue.Queue[RawChange | object] = queue.Queue(maxsize=queue_size)
        self._pump: threading.Thread | None = None

    @property
    def quiet_period(self) -> float:
        """Quiet period in seconds."""
        return self._quiet_period

    def merge(self, path: Path, change_type: ChangeType, new_path: Path | None = None) -> bool:
        """
        Record a change, keeping only the most severe one per path.

        Args:
            path: Path the notification is about
            change_type: Kind of change
            new_path: Path after the change (renames); defaults to path

        Returns:
            True if the stored record for path was created or replaced
        """
        record = ChangeRecord(change_type=change_type, new_path=new_path or path)

        with self._lock:
            existing = self._pending.get(path)
            if existing is not None and change_type <= existing.change_type:
                return False
            self._pending[path] = record
            self._ready.set()
        return True

    def submit(self, change: RawChange) -> None:
        """Queue a raw notification for the pump thread (blocks while the queue is full)."""
        self._queue.put(change)

    def start(self) -> None:
        """Start the pump thread that drains submitted notifications."""
        if self._pump is not None:
            return
        self._pump = threading.Thread(target=self._drain, name="debounce-pump", daemon=True)
        self._pump.start()

    def stop(self) -> None:
        """Stop the pump thread after it has drained what is queued."""
        if self._pump is None:
            return
        self._queue.put(_STOP)
        self._pump.join(timeout=5.0)
        self._pump = None

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            assert isinstance(item, RawChange)
            self.merge(item.path, item.change_type, item.new_path)

    def await_batch(
        self, quiet_period: float | None = None, timeout: float | None = None
    ) -> ChangeBatch | None:
        """
        Block until a batch of changes is available and return it.

        Waits for at least one change, then sleeps the quiet period so the
        several raw events of one logical write land in the same batch,
        then atomically takes and clears the accumulated changes.

        Args:
            quiet_period: Override of the configured quiet period, in seconds
            timeout: Give up waiting for the first change after this many seconds

        Returns:
            A non-empty batch, or None if timeout elapsed first
        """
        delay = self._quiet_period if quiet_period is None else quiet_period

        while True:
            if not self._ready.wait(timeout):
                return None
            time.sleep(delay)

            with self._lock:
                batch = self._pending
                self._pending = {}
                self._ready.clear()

            if batch:
                self.log.debug("batch_ready", count=len(batch))
                return batch

    def clear(self) -> None:
        """Drop all pending changes without handing them out."""
        with self._lock:
            self._pending = {}
            self._ready.clear()

    @property
    def pending_count(self) -> int:
        """Get number of pending changes."""
        with self._lock:
            return len(self._pending)

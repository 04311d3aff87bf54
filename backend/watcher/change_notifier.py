"""
onchanged Change Notifier.

Cross-platform file system monitoring using watchdog. Raw events are
typed and forwarded to the debouncer; nothing here decides what a
change means.
Requires Python 3.11+.
"""

import os
import threading
from dataclasses import dataclass
from pathlib import Path

from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver, ObservedWatch
from watchdog.events import (
    FileSystemEvent,
    FileSystemEventHandler,
    FileSystemMovedEvent,
)

from utils import console
from utils.config import get_settings
from utils.logger import LoggerMixin
from utils.paths import normalize_path
from watcher.debouncer import ChangeType, DebounceAggregator, RawChange


@dataclass(frozen=True, slots=True)
class WatchTarget:
    """A watched path: a single file or a whole directory subtree."""

    path: Path
    is_directory: bool

    @property
    def watch_dir(self) -> Path:
        """Directory the native subscription is placed on."""
        return self.path if self.is_directory else self.path.parent

    def matches(self, path: Path) -> bool:
        """Check whether an event path belongs to this target."""
        if self.is_directory:
            return path == self.path or self.path in path.parents
        return path == self.path


def _event_path(raw: str | bytes) -> Path:
    return Path(os.fsdecode(raw))


class TargetEventHandler(FileSystemEventHandler, LoggerMixin):
    """
    Handles watchdog events for one WatchTarget.

    File targets share their parent directory's emitter with any sibling
    targets, so every handler filters on its own path.
    """

    def __init__(self, notifier: "ChangeNotifier", target: WatchTarget) -> None:
        """
        Initialize the handler.

        Args:
            notifier: Notifier that receives typed changes
            target: Target this handler filters for
        """
        super().__init__()
        self._notifier = notifier
        self._target = target

    @property
    def target(self) -> WatchTarget:
        return self._target

    def _forward(self, path: Path, change_type: ChangeType, new_path: Path | None = None) -> None:
        self._notifier.deliver(RawChange(path=path, change_type=change_type, new_path=new_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        """Handle file modification."""
        if event.is_directory:
            return
        path = _event_path(event.src_path)
        if self._target.matches(path):
            self._forward(path, ChangeType.CHANGED)

    def on_created(self, event: FileSystemEvent) -> None:
        """Handle creation; a re-created watched file counts as changed."""
        if event.is_directory:
            return
        path = _event_path(event.src_path)
        if self._target.matches(path):
            self._forward(path, ChangeType.CHANGED)

    def on_deleted(self, event: FileSystemEvent) -> None:
        """Handle file/directory deletion."""
        path = _event_path(event.src_path)
        if self._target.matches(path):
            self._forward(path, ChangeType.DELETED)

    def on_moved(self, event: FileSystemMovedEvent) -> None:
        """Handle move/rename."""
        src_path = _event_path(event.src_path)
        dest_path = _event_path(event.dest_path)

        if self._target.matches(src_path):
            self._forward(src_path, ChangeType.RENAMED, dest_path)
        elif self._target.matches(dest_path) and not event.is_directory:
            # Editors that save by writing a temp file and renaming it over
            # the watched file only ever report the destination.
            self._forward(dest_path, ChangeType.CHANGED)


class ChangeNotifier(LoggerMixin):
    """
    Owns the native change subscriptions for one watch session.

    Delivery starts disabled; call enable(True) once all paths of a watch
    set are registered.
    """

    def __init__(
        self,
        aggregator: DebounceAggregator,
        print_notifications: bool | None = None,
        observer: BaseObserver | None = None,
    ) -> None:
        """
        Initialize the notifier.

        Args:
            aggregator: Debouncer that accumulates the typed changes
            print_notifications: Echo every raw notification to the console
            observer: watchdog observer to schedule on (a native one by default)
        """
        settings = get_settings()
        if print_notifications is None:
            print_notifications = settings.watcher.print_notifications

        self._aggregator = aggregator
        self._print_notifications = print_notifications
        self._observer = observer if observer is not None else Observer()
        self._handlers: list[tuple[ObservedWatch, TargetEventHandler]] = []
        self._lock = threading.Lock()
        self._enabled = threading.Event()

    def register(self, path: Path | str) -> bool:
        """
        Subscribe to change, rename and delete notifications for a path.

        Args:
            path: File or directory to watch

        Returns:
            False if the path cannot be mapped to a directory to monitor
        """
        path = normalize_path(path)
        target = WatchTarget(path=path, is_directory=path.is_dir())

        if not target.watch_dir.is_dir():
            self.log.error("invalid_watch_path", path=str(path))
            console.error(f"error: invalid path for monitoring: {path}")
            return False

        with self._lock:
            if any(h.target == target for _, h in self._handlers):
                return True

            handler = TargetEventHandler(self, target)
            try:
                watch = self._observer.schedule(
                    handler,
                    str(target.watch_dir),
                    recursive=target.is_directory,
                )
            except OSError as e:
                self.log.error("watch_schedule_failed", path=str(path), error=str(e))
                console.error(f"error: could not monitor {path}: {e}")
                return False

            self._handlers.append((watch, handler))

        self.log.debug("watch_registered", path=str(path), directory=target.is_directory)
        return True

    def unregister_all(self) -> None:
        """Stop and discard every subscription."""
        self.enable(False)
        with self._lock:
            self._observer.unschedule_all()
            self._handlers.clear()
        self.log.debug("watches_cleared")

    def enable(self, enabled: bool) -> None:
        """Turn delivery on or off without touching the subscriptions."""
        if enabled:
            if not self._observer.is_alive():
                self._observer.start()
            self._enabled.set()
        else:
            self._enabled.clear()

    def stop(self) -> None:
        """Shut down the observer thread."""
        self._enabled.clear()
        if self._observer.is_alive():
            self._observer.stop()
            self._observer.join(timeout=5.0)

    def deliver(self, change: RawChange) -> None:
        """Forward one raw notification to the debouncer if delivery is enabled."""
        if not self._enabled.is_set():
            return

        self.log.debug(
            "raw_change",
            type=change.change_type.label,
            path=str(change.path),
            new_path=str(change.new_path) if change.new_path else None,
        )
        if self._print_notifications:
            console.header(f"{console.timestamp()}: {change.change_type.label}: {change.path}")

        self._aggregator.submit(change)

    @property
    def targets(self) -> list[WatchTarget]:
        """Targets registered in the current watch session."""
        with self._lock:
            return [h.target for _, h in self._handlers]

    @property
    def is_enabled(self) -> bool:
        return self._enabled.is_set()

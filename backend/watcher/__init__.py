"""
onchanged Watcher Package.

File system change notification and debouncing.
Requires Python 3.11+.
"""

from watcher.debouncer import (
    ChangeBatch,
    ChangeRecord,
    ChangeType,
    DebounceAggregator,
    RawChange,
)
from watcher.change_notifier import ChangeNotifier, TargetEventHandler, WatchTarget

__all__ = [
    "ChangeBatch",
    "ChangeRecord",
    "ChangeType",
    "DebounceAggregator",
    "RawChange",
    "ChangeNotifier",
    "TargetEventHandler",
    "WatchTarget",
]

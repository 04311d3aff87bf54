"""
onchanged Interactive Trigger.

Reads single key presses on a background thread and runs the action
bound to the key, independently of the change watch.
Requires Python 3.11+.
"""

import os
import sys
import threading
from collections.abc import Callable

from utils.logger import LoggerMixin

if sys.platform == "win32":
    import msvcrt
else:
    import termios
    import tty

Action = Callable[[], object]
KeySource = Callable[[], str | None]


class TerminalKeyReader:
    """
    Reads one key at a time from stdin.

    On a POSIX terminal the tty is switched to cbreak mode while open and
    restored on close. Returns None at end of input.
    """

    def __init__(self) -> None:
        self._fd: int | None = None
        self._saved_tty_state: list | None = None

    def open(self) -> None:
        if sys.platform == "win32" or not sys.stdin.isatty():
            return
        self._fd = sys.stdin.fileno()
        self._saved_tty_state = termios.tcgetattr(self._fd)
        tty.setcbreak(self._fd, termios.TCSANOW)

    def close(self) -> None:
        if self._fd is not None and self._saved_tty_state is not None:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved_tty_state)
        self._fd = None
        self._saved_tty_state = None

    def __call__(self) -> str | None:
        if sys.platform == "win32":
            return msvcrt.getwch()
        if self._fd is not None:
            data = os.read(self._fd, 1)
            return data.decode(errors="replace") if data else None
        key = sys.stdin.read(1)
        return key or None


class InteractiveTrigger(LoggerMixin):
    """
    Runs actions on key presses.

    Keys listed in bindings (case-insensitive) run their action; any other
    key runs the default action, if there is one.
    """

    def __init__(
        self,
        bindings: dict[str, Action] | None = None,
        default: Action | None = None,
        key_source: KeySource | None = None,
    ) -> None:
        """
        Initialize the trigger.

        Args:
            bindings: Key to action map
            default: Action for unbound keys
            key_source: Returns the next key, or None at end of input
        """
        self._bindings = {key.lower(): action for key, action in (bindings or {}).items()}
        self._default = default
        self._reader = TerminalKeyReader() if key_source is None else None
        self._key_source = key_source or self._reader
        self._thread: threading.Thread | None = None
        self._stopped = threading.Event()

    def action_for(self, key: str) -> Action | None:
        """Action a key press would run."""
        return self._bindings.get(key.lower(), self._default)

    def handle_key(self, key: str) -> bool:
        """
        Run the action bound to a key.

        Returns:
            True if an action ran
        """
        action = self.action_for(key)
        if action is None:
            return False

        self.log.debug("key_triggered", key=key)
        try:
            action()
        except Exception as e:
            self.log.error("triggered_action_failed", key=key, error=str(e))
        return True

    def start(self) -> None:
        """Start reading keys on a daemon thread."""
        if self._thread is not None:
            return
        if self._reader is not None:
            self._reader.open()
        self._thread = threading.Thread(target=self._read_keys, name="key-trigger", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop handling keys and restore the terminal."""
        self._stopped.set()
        if self._reader is not None:
            self._reader.close()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _read_keys(self) -> None:
        while not self._stopped.is_set():
            key = self._key_source()
            if key is None or self._stopped.is_set():
                return
            self.handle_key(key)

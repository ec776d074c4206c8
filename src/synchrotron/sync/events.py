"""Named lifecycle events emitted by the sync engine.

Listeners are called synchronously on whichever thread emits the event (the
caller of sync(), the debounce timer thread, or the rsync stderr reader).
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from enum import Enum
from typing import Any

Listener = Callable[[Any], None]


class SyncEventName(str, Enum):
    """Every event the engine emits, with its payload type."""

    SYNC_START = "sync_start"  # SyncStartEvent
    SYNC_END = "sync_end"  # SyncEndEvent
    DEBOUNCE = "debounce"  # DebounceEvent
    RSYNC_STDOUT = "rsync_stdout"  # OutputRecord
    RSYNC_STDERR = "rsync_stderr"  # OutputRecord
    WARNING = "warning"  # WarningEvent
    ERROR = "error"  # SyncError


class EventEmitter:
    """Minimal thread-safe listener registry."""

    def __init__(self) -> None:
        self._listeners: dict[SyncEventName, list[Listener]] = {}
        self._lock = threading.Lock()

    def on(self, name: SyncEventName | str, listener: Listener) -> None:
        """Register a listener for an event."""
        name = SyncEventName(name)
        with self._lock:
            self._listeners.setdefault(name, []).append(listener)

    def off(self, name: SyncEventName | str, listener: Listener) -> None:
        """Remove a previously registered listener, if present."""
        name = SyncEventName(name)
        with self._lock:
            listeners = self._listeners.get(name, [])
            if listener in listeners:
                listeners.remove(listener)

    def emit(self, name: SyncEventName, payload: Any) -> None:
        """Call every listener registered for ``name`` with ``payload``."""
        with self._lock:
            listeners = list(self._listeners.get(name, []))

        for listener in listeners:
            listener(payload)

"""Shared types for synchrotron.

This module defines enums used by the watcher, the scheduler and the
orchestrator.
"""

from __future__ import annotations

from enum import Enum


class ChangeKind(str, Enum):
    """Kind of filesystem change reported by a watcher."""

    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


class SyncState(str, Enum):
    """Whether a sync run currently holds the transfer slot."""

    IDLE = "idle"
    RUNNING = "running"


class DebounceState(str, Enum):
    """State of the debounce timer."""

    IDLE = "idle"
    ARMED = "armed"

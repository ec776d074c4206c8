"""Core module - Shared configuration and types."""

from synchrotron.core.config import (
    DEFAULT_DEBOUNCE_MAX,
    DEFAULT_DEBOUNCE_MIN,
    DEFAULT_MAX_SYNC_LIMIT,
    DEFAULT_RSYNC_PATH,
    SyncConfig,
)
from synchrotron.core.types import ChangeKind, DebounceState, SyncState

__all__ = [
    # Config
    "DEFAULT_DEBOUNCE_MAX",
    "DEFAULT_DEBOUNCE_MIN",
    "DEFAULT_MAX_SYNC_LIMIT",
    "DEFAULT_RSYNC_PATH",
    "SyncConfig",
    # Types
    "ChangeKind",
    "DebounceState",
    "SyncState",
]

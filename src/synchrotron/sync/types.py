"""Shared types and dataclasses for sync operations.

This module provides:
- SyncError, TransferError, TransferSpawnError: Exception classes
- SyncStats: Stats accumulated by one sync() call
- SyncStartEvent, SyncEndEvent, DebounceEvent, WarningEvent: Event payloads
"""

from __future__ import annotations

from dataclasses import dataclass, field


class SyncError(Exception):
    """Base exception for sync errors."""


class TransferError(SyncError):
    """rsync exited with a non-recoverable error code.

    Attributes:
        exit_code: The rsync exit status.
    """

    def __init__(self, exit_code: int, message: str | None = None) -> None:
        self.exit_code = exit_code
        super().__init__(message or f"rsync exited with error code {exit_code}")


class TransferSpawnError(SyncError):
    """rsync could not be started at all.

    Attributes:
        executable: Path that failed to execute.
    """

    def __init__(self, executable: str, reason: str) -> None:
        self.executable = executable
        super().__init__(f"Unable to run {executable}: {reason}")


@dataclass
class SyncStats:
    """Stats about one sync() call.

    Attributes:
        items_synced: Items rsync reported as sent or deleted, including
            those from runs that were followed by a recoverable retry.
        attempts: Number of rsync runs (0 when there was nothing to sync).
    """

    items_synced: int = 0
    attempts: int = 0


@dataclass(frozen=True)
class SyncStartEvent:
    """Emitted when a sync run starts."""

    paths: list[str]


@dataclass(frozen=True)
class SyncEndEvent:
    """Emitted when a sync finishes successfully."""

    paths: list[str]
    stats: SyncStats = field(default_factory=SyncStats)


@dataclass(frozen=True)
class DebounceEvent:
    """Emitted when rapid changes have pushed the debounce into backoff.

    ``pending_changes`` may differ from what is finally synced once
    normalization and rsync filtering have run.
    """

    pending_changes: int


@dataclass(frozen=True)
class WarningEvent:
    """Emitted for recoverable problems."""

    message: str

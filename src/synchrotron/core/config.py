"""Configuration for a synchrotron sync engine.

This module defines the values consumed by the sync engine. How they are
loaded (command line, JSON file) is the CLI's business.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_DEBOUNCE_MIN = 50  # milliseconds
DEFAULT_DEBOUNCE_MAX = 2000  # milliseconds
DEFAULT_MAX_SYNC_LIMIT = 1000
DEFAULT_RSYNC_PATH = "/usr/bin/rsync"


@dataclass
class SyncConfig:
    """Configuration for syncing one source directory to one destination.

    Attributes:
        dest: Destination to sync files to, as an rsync-compatible path.
        source: Local directory to sync files from. Normalized to an absolute
            path with a trailing slash so rsync syncs the directory contents
            rather than the directory itself.
        dry_run: Simulate changes without making them.
        delete_ignored: Also delete ignored files from the destination.
        ignore_path: File of rsync exclude patterns, one per line.
        exclude: Extra exclude patterns passed to rsync and to the watcher.
        rsync_path: Path to the rsync executable.
        debounce_min: Minimum delay in milliseconds before syncing a change.
        debounce_max: Maximum delay in milliseconds while changes keep coming.
        max_sync_limit: Above this many changed paths, sync the whole source.
    """

    dest: str
    source: str
    dry_run: bool = False
    delete_ignored: bool = False
    ignore_path: str | None = None
    exclude: list[str] = field(default_factory=list)
    rsync_path: str = DEFAULT_RSYNC_PATH
    debounce_min: int = DEFAULT_DEBOUNCE_MIN
    debounce_max: int = DEFAULT_DEBOUNCE_MAX
    max_sync_limit: int = DEFAULT_MAX_SYNC_LIMIT

    def __post_init__(self) -> None:
        """Normalize paths and validate numeric settings."""
        if not self.dest:
            raise ValueError("A sync destination is required")

        self.source = os.path.join(os.path.abspath(self.source), "")
        self.rsync_path = os.path.abspath(self.rsync_path)

        if self.ignore_path:
            self.ignore_path = os.path.abspath(self.ignore_path)
        else:
            self.ignore_path = None

        self.exclude = list(self.exclude)

        if self.debounce_min < 0:
            raise ValueError(f"debounce_min must not be negative: {self.debounce_min}")
        if self.debounce_max < self.debounce_min:
            raise ValueError(
                f"debounce_max ({self.debounce_max}) must be at least "
                f"debounce_min ({self.debounce_min})"
            )
        if self.max_sync_limit < 1:
            raise ValueError(f"max_sync_limit must be positive: {self.max_sync_limit}")

    @property
    def watch_path(self) -> str:
        """Source directory without the trailing slash."""
        return self.source.rstrip("/") or "/"

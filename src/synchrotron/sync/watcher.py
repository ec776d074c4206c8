"""File system watcher feeding changes into the sync engine.

This module provides:
- ChangeEventHandler: Translates watchdog events into (ChangeKind, path) pairs
- FileWatcher: Watches a directory recursively using watchdog

Paths handed to the callback are POSIX paths relative to the watched
directory. Moves are reported as a removal of the old path followed by an
addition of the new one. Directory "modified" events are dropped: they only
mean a child changed, and the child gets its own event.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from synchrotron.core.types import ChangeKind

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[ChangeKind, str], None]


def _decode(path: str | bytes) -> str:
    if isinstance(path, bytes):
        return path.decode("utf-8", errors="replace")
    return path


class ChangeEventHandler(FileSystemEventHandler):
    """Event handler that reports relative changed paths."""

    def __init__(self, base_path: Path, on_change: ChangeCallback) -> None:
        """Initialize the handler.

        Args:
            base_path: Directory being watched (absolute).
            on_change: Called with (kind, relative path) for every change.
        """
        super().__init__()
        self._base_path = base_path
        self._on_change = on_change

    def _relative(self, src_path: str | bytes) -> str | None:
        """Return the POSIX path relative to the base, or None if outside it."""
        path = Path(_decode(src_path))
        try:
            rel_path = path.relative_to(self._base_path)
        except ValueError:
            logger.warning("Path %s is not relative to %s", path, self._base_path)
            return None

        # Use forward slashes for consistency
        return str(rel_path).replace(os.sep, "/")

    def _report(self, kind: ChangeKind, src_path: str | bytes) -> None:
        rel_path = self._relative(src_path)
        if rel_path is None:
            return

        logger.debug("Watcher event: %s %s", kind.value, rel_path)
        self._on_change(kind, rel_path)

    def on_created(self, event: FileSystemEvent) -> None:
        """Handle created event."""
        if isinstance(event, FileCreatedEvent | DirCreatedEvent):
            self._report(ChangeKind.ADDED, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        """Handle modified event."""
        if isinstance(event, DirModifiedEvent):
            return
        if isinstance(event, FileModifiedEvent):
            self._report(ChangeKind.MODIFIED, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        """Handle deleted event."""
        if isinstance(event, FileDeletedEvent | DirDeletedEvent):
            self._report(ChangeKind.REMOVED, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle moved event."""
        if isinstance(event, FileMovedEvent | DirMovedEvent):
            self._report(ChangeKind.REMOVED, event.src_path)
            self._report(ChangeKind.ADDED, event.dest_path)


class FileWatcher:
    """Watches a directory for changes and reports them to a callback."""

    def __init__(
        self,
        watch_path: str | Path,
        on_change: ChangeCallback,
        observer_factory: Callable[[], BaseObserver] = Observer,
    ) -> None:
        """Initialize the file watcher.

        Args:
            watch_path: Directory to watch.
            on_change: Called with (kind, relative path) from the observer thread.
            observer_factory: Creates the watchdog observer.
        """
        self._watch_path = Path(watch_path).resolve()
        if not self._watch_path.is_dir():
            raise ValueError(f"Watch path must be a directory: {watch_path}")

        self._handler = ChangeEventHandler(self._watch_path, on_change)
        self._observer_factory = observer_factory
        self._observer: BaseObserver | None = None

    @property
    def watch_path(self) -> Path:
        """Get the watched directory path."""
        return self._watch_path

    @property
    def is_running(self) -> bool:
        """Check if the watcher is running."""
        return self._observer is not None

    def start(self) -> None:
        """Start watching for changes."""
        if self._observer is not None:
            return

        observer = self._observer_factory()
        observer.schedule(self._handler, str(self._watch_path), recursive=True)
        observer.start()
        self._observer = observer
        logger.debug("Watching %s", self._watch_path)

    def stop(self) -> None:
        """Stop watching for changes."""
        if self._observer is None:
            return

        self._observer.stop()
        self._observer.join(timeout=5.0)
        self._observer = None
        logger.debug("Stopped watching %s", self._watch_path)

    def __enter__(self) -> FileWatcher:
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.stop()

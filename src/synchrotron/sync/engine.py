"""Sync engine tying the watcher, coalescer, debouncer and orchestrator together.

Architecture:
    FileWatcher → record_change → ChangeCoalescer → DebounceScheduler → SyncOrchestrator

Usage:
    engine = Synchrotron(SyncConfig(dest="host:/srv/site", source="."))
    engine.on(SyncEventName.SYNC_END, lambda event: print(event.stats))
    engine.watch()
    engine.sync()  # initial full sync
    ...
    engine.unwatch()
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from typing import Any

from synchrotron.core.config import SyncConfig
from synchrotron.core.types import ChangeKind
from synchrotron.sync.coalescer import ChangeCoalescer
from synchrotron.sync.debounce import DebounceScheduler, TimerFactory
from synchrotron.sync.events import EventEmitter, SyncEventName
from synchrotron.sync.ignore import IgnorePatterns
from synchrotron.sync.orchestrator import SyncOrchestrator
from synchrotron.sync.transfer import TransferBackend
from synchrotron.sync.types import DebounceEvent, SyncError, SyncStats
from synchrotron.sync.watcher import FileWatcher


def load_ignore_patterns(config: SyncConfig) -> IgnorePatterns:
    """Build the watcher-side ignore predicate for a config.

    Rules are loaded in the order rsync sees them: the ignore file first,
    then the extra exclude patterns.
    """
    ignore = IgnorePatterns(base_path=config.watch_path)
    if config.ignore_path:
        ignore.load_from_file(config.ignore_path)
    for pattern in config.exclude:
        ignore.add_pattern(pattern)
    return ignore


class Synchrotron:
    """Monitors a source directory and syncs it to a destination on change."""

    def __init__(
        self,
        config: SyncConfig,
        backend: TransferBackend | None = None,
        logger: logging.Logger | None = None,
        is_ignored: Callable[[str], bool] | None = None,
        timer_factory: TimerFactory = threading.Timer,
        watcher_factory: Callable[..., FileWatcher] = FileWatcher,
    ) -> None:
        """Initialize the engine.

        Args:
            config: Sync configuration.
            backend: Transfer backend (rsync via subprocess if omitted).
            logger: Logger for diagnostics (module logger if omitted).
            is_ignored: Predicate for relative paths to leave out of the
                pending set. Built from the config's ignore file and exclude
                patterns if omitted.
            timer_factory: Creates debounce timers.
            watcher_factory: Creates the file watcher on watch().
        """
        self._config = config
        self._log = logger or logging.getLogger(__name__)
        self._events = EventEmitter()
        self._is_ignored = is_ignored or load_ignore_patterns(config)
        self._watcher_factory = watcher_factory
        self._watcher: FileWatcher | None = None

        self._orchestrator = SyncOrchestrator(
            config,
            events=self._events,
            backend=backend,
            logger=self._log,
        )
        self._coalescer = ChangeCoalescer(max_paths=config.max_sync_limit)
        self._scheduler = DebounceScheduler(
            on_fire=self._sync_pending,
            min_delay=config.debounce_min,
            max_delay=config.debounce_max,
            is_busy=lambda: self._orchestrator.is_syncing,
            on_pressure=self._emit_debounce,
            timer_factory=timer_factory,
        )

    @property
    def config(self) -> SyncConfig:
        return self._config

    @property
    def coalescer(self) -> ChangeCoalescer:
        return self._coalescer

    @property
    def scheduler(self) -> DebounceScheduler:
        return self._scheduler

    @property
    def orchestrator(self) -> SyncOrchestrator:
        return self._orchestrator

    @property
    def is_syncing(self) -> bool:
        """Whether a sync operation is running or waiting to run."""
        return self._orchestrator.is_syncing

    @property
    def is_watching(self) -> bool:
        """Whether the source directory is being watched."""
        return self._watcher is not None

    def on(self, name: SyncEventName | str, listener: Callable[[Any], None]) -> Synchrotron:
        """Register an event listener. Returns self so calls can be chained."""
        self._events.on(name, listener)
        return self

    def off(self, name: SyncEventName | str, listener: Callable[[Any], None]) -> Synchrotron:
        """Remove an event listener."""
        self._events.off(name, listener)
        return self

    def sync(self, paths: Sequence[str] | None = None) -> SyncStats:
        """Sync paths (default: the entire source directory) to the destination.

        See SyncOrchestrator.sync().
        """
        return self._orchestrator.sync(paths)

    def record_change(self, kind: ChangeKind, path: str) -> None:
        """Record a change to a path relative to the source directory."""
        if self._is_ignored(path):
            return

        if self._coalescer.record_change(kind, path):
            self._scheduler.change_occurred()

    def watch(self) -> None:
        """Start watching the source directory and syncing when changes occur."""
        if self._watcher is not None:
            self.unwatch()

        watcher = self._watcher_factory(self._config.watch_path, self.record_change)
        watcher.start()
        self._watcher = watcher
        self._log.debug("Watching %s", self._config.watch_path)

    def unwatch(self) -> None:
        """Stop watching. A running rsync is left to finish."""
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None
        self._scheduler.cancel()

    def _emit_debounce(self) -> None:
        self._events.emit(
            SyncEventName.DEBOUNCE,
            DebounceEvent(pending_changes=len(self._coalescer)),
        )

    def _sync_pending(self) -> None:
        """Debounce timer callback: sync everything gathered so far."""
        paths = self._coalescer.drain()
        if not paths:
            return

        try:
            self._orchestrator.sync(paths)
        except SyncError as e:
            # Already reported to listeners through the error event
            self._log.debug("Debounced sync failed: %s", e)

"""Console output for the synchrotron CLI.

This module provides:
- StatusLine: A transient line on stdout for "waiting for changes to settle"
- ConsoleHandler: Logging handler that clears the status line before printing
- SyncReporter: Batches "Synced N items" reports with a gentle backoff
"""

from __future__ import annotations

import logging
import sys
import threading
from collections.abc import Callable
from typing import TextIO

import click

from synchrotron.sync.debounce import DebounceScheduler, TimerFactory

VERBOSITY_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

# Sync reports back off from 1s to 2s while syncs keep completing
REPORT_DELAY_MIN = 1000
REPORT_DELAY_MAX = 2000
REPORT_BACKOFF_FACTOR = 1.2


class StatusLine:
    """A single status line that is overwritten in place.

    Disabled when the stream isn't a terminal, in which case show() and
    clear() do nothing.
    """

    def __init__(self, stream: TextIO | None = None, enabled: bool | None = None) -> None:
        self._stream = stream or sys.stdout
        if enabled is None:
            enabled = self._stream.isatty()
        self._enabled = enabled
        self._length = 0
        self.lock = threading.RLock()

    @property
    def is_visible(self) -> bool:
        return self._length > 0

    def show(self, text: str) -> None:
        """Replace the status line with ``text``."""
        if not self._enabled:
            return

        with self.lock:
            self.clear()
            self._stream.write(text)
            self._stream.flush()
            self._length = len(click.unstyle(text))

    def clear(self) -> None:
        """Clear the current status line."""
        with self.lock:
            if self._length > 0:
                # Move to start of line and clear it
                self._stream.write("\r" + " " * self._length + "\r")
                self._stream.flush()
                self._length = 0


class ConsoleHandler(logging.Handler):
    """Logging handler that coordinates with the status line display.

    Clears the status line before printing. Warnings and errors go to stderr.
    """

    def __init__(self, status_line: StatusLine, color: bool | None = None) -> None:
        super().__init__()
        self._status_line = status_line
        self._color = color

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            if record.levelno < logging.INFO:
                msg = click.style(msg, fg="bright_black")

            with self._status_line.lock:
                self._status_line.clear()
                click.echo(msg, err=record.levelno >= logging.WARNING, color=self._color)
        except Exception:
            self.handleError(record)


def configure_logging(verbosity: str, status_line: StatusLine, color: bool | None) -> logging.Logger:
    """Route the synchrotron logger to the console at the given verbosity."""
    log = logging.getLogger("synchrotron")
    for handler in log.handlers[:]:
        log.removeHandler(handler)

    handler = ConsoleHandler(status_line, color=color)
    handler.setFormatter(logging.Formatter("%(message)s"))
    log.addHandler(handler)
    log.setLevel(VERBOSITY_LEVELS[verbosity])
    # Prevent propagation to root logger
    log.propagate = False
    return log


class SyncReporter:
    """Accumulates synced item counts and reports them in batches.

    The first sync is reported immediately. Later ones are coalesced so a
    flurry of small syncs produces one report. Empty syncs are not reported
    unless ``report_empty`` is set (one-shot mode).
    """

    def __init__(
        self,
        report: Callable[[int], None],
        report_empty: bool = False,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self._report = report
        self._report_empty = report_empty
        self._lock = threading.Lock()
        self._sync_count = 0
        self._item_count = 0
        self._scheduler = DebounceScheduler(
            on_fire=self.flush,
            min_delay=REPORT_DELAY_MIN,
            max_delay=REPORT_DELAY_MAX,
            factor=REPORT_BACKOFF_FACTOR,
            timer_factory=timer_factory,
        )

    @property
    def sync_count(self) -> int:
        return self._sync_count

    def sync_ended(self, items_synced: int) -> None:
        """Record a finished sync and schedule a report."""
        with self._lock:
            self._sync_count += 1
            if items_synced == 0 and not self._report_empty:
                # Changes to paths rsync ended up ignoring
                return
            self._item_count += items_synced
            first_sync = self._sync_count == 1

        if first_sync:
            self.flush()
        else:
            self._scheduler.change_occurred()

    def flush(self) -> None:
        """Report everything accumulated so far."""
        with self._lock:
            count = self._item_count
            self._item_count = 0

        if count == 0 and not self._report_empty:
            return

        self._report(count)

    def cancel(self) -> None:
        """Drop any scheduled report."""
        self._scheduler.cancel()

"""Debounce timer with exponential backoff.

This module provides:
- DebounceScheduler: A single re-armable timer that fires once changes settle
- compute_delay: The backoff formula

Each change that arrives while the timer is armed cancels and restarts it with
a longer delay, up to a maximum. When the timer finally fires while the sync
engine is busy, it re-arms instead so changes keep being gathered.
"""

from __future__ import annotations

import functools
import itertools
import logging
import math
import threading
from collections.abc import Callable
from typing import Protocol

from synchrotron.core.config import DEFAULT_DEBOUNCE_MAX, DEFAULT_DEBOUNCE_MIN
from synchrotron.core.types import DebounceState

logger = logging.getLogger(__name__)

DEFAULT_BACKOFF_FACTOR = 1.5

# Consecutive resets after which on_pressure is signalled
PRESSURE_THRESHOLD = 8


class TimerProtocol(Protocol):
    """The subset of threading.Timer the scheduler uses."""

    daemon: bool

    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerProtocol]


def compute_delay(
    consecutive_resets: int,
    min_delay: int = DEFAULT_DEBOUNCE_MIN,
    max_delay: int = DEFAULT_DEBOUNCE_MAX,
    factor: float = DEFAULT_BACKOFF_FACTOR,
) -> int:
    """Return the delay in milliseconds after ``consecutive_resets`` resets.

    Halves round up, so 112.5 becomes 113.
    """
    # Grow step by step so a long burst stops at the cap instead of overflowing
    delay: float = min(min_delay, max_delay)
    for _ in range(consecutive_resets):
        if delay >= max_delay:
            break
        delay = min(max_delay, delay * factor)
    return int(math.floor(delay + 0.5))


class DebounceScheduler:
    """Single debounce timer for one watched root.

    Usage:
        scheduler = DebounceScheduler(on_fire=flush, is_busy=lambda: syncing)
        scheduler.change_occurred()  # arms or re-arms the timer
        ...
        scheduler.cancel()
    """

    def __init__(
        self,
        on_fire: Callable[[], None],
        min_delay: int = DEFAULT_DEBOUNCE_MIN,
        max_delay: int = DEFAULT_DEBOUNCE_MAX,
        factor: float = DEFAULT_BACKOFF_FACTOR,
        is_busy: Callable[[], bool] | None = None,
        on_pressure: Callable[[], None] | None = None,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        """Initialize the scheduler.

        Args:
            on_fire: Called from the timer thread once changes have settled.
            min_delay: Delay in milliseconds for the first change of a burst.
            max_delay: Upper bound for the delay in milliseconds.
            factor: Growth factor applied per consecutive reset.
            is_busy: When this returns True at fire time, re-arm instead.
            on_pressure: Called when many consecutive resets have occurred.
            timer_factory: Creates timers; ``threading.Timer`` by default.
        """
        self._on_fire = on_fire
        self._min_delay = min_delay
        self._max_delay = max_delay
        self._factor = factor
        self._is_busy = is_busy or (lambda: False)
        self._on_pressure = on_pressure
        self._timer_factory = timer_factory

        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._timer: TimerProtocol | None = None
        self._timer_id = 0
        self._consecutive_resets = 0
        self._delay = min_delay

    @property
    def state(self) -> DebounceState:
        """Whether a timer is currently armed."""
        return DebounceState.ARMED if self._timer is not None else DebounceState.IDLE

    @property
    def consecutive_resets(self) -> int:
        """Number of times the armed timer was restarted in this burst."""
        return self._consecutive_resets

    @property
    def delay(self) -> int:
        """Delay in milliseconds used for the most recently armed timer."""
        return self._delay

    def change_occurred(self) -> None:
        """Arm the timer, or restart it with a longer delay if already armed."""
        with self._lock:
            under_pressure = self._arm()

        if under_pressure and self._on_pressure:
            self._on_pressure()

    def cancel(self) -> None:
        """Cancel any armed timer. Pending changes are left untouched."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
                logger.debug("Debounce timer cancelled")

    def _arm(self) -> bool:
        """Start a new timer. Must be called with the lock held.

        Returns:
            True if the burst has reached the pressure threshold.
        """
        resets = self._consecutive_resets + 1 if self._timer is not None else 0
        delay = compute_delay(resets, self._min_delay, self._max_delay, self._factor)

        if self._timer is not None:
            self._timer.cancel()
        self._consecutive_resets = resets
        self._delay = delay
        under_pressure = resets >= PRESSURE_THRESHOLD

        self._timer_id = next(self._ids)
        self._timer = self._timer_factory(
            self._delay / 1000,
            functools.partial(self._fire, self._timer_id),
        )
        self._timer.daemon = True
        self._timer.start()

        return under_pressure

    def _fire(self, timer_id: int) -> None:
        """Handle a timer expiry."""
        with self._lock:
            if timer_id != self._timer_id or self._timer is None:
                # Cancelled or superseded after the timer thread woke up
                return

            self._timer = None

            if self._is_busy():
                logger.debug("Sync in progress; waiting %dms more", self._min_delay)
                self._arm()
                return

            self._consecutive_resets = 0

        self._on_fire()

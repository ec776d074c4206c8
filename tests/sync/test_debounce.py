"""Tests for the debounce scheduler."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import pytest

from synchrotron.core.types import DebounceState
from synchrotron.sync.debounce import PRESSURE_THRESHOLD, DebounceScheduler, compute_delay

if TYPE_CHECKING:
    from conftest import FakeTimerFactory


class TestComputeDelay:
    """Tests for the backoff formula."""

    def test_first_change_uses_min(self) -> None:
        assert compute_delay(0, 50, 2000) == 50

    def test_grows_by_factor(self) -> None:
        assert compute_delay(1, 50, 2000) == 75
        assert compute_delay(2, 50, 2000) == 113  # 112.5 rounds up
        assert compute_delay(3, 50, 2000) == 169  # 168.75

    def test_capped_at_max(self) -> None:
        assert compute_delay(20, 50, 2000) == 2000

    def test_non_decreasing(self) -> None:
        delays = [compute_delay(n, 50, 2000) for n in range(30)]
        assert delays == sorted(delays)
        assert all(50 <= d <= 2000 for d in delays)

    def test_custom_factor(self) -> None:
        assert compute_delay(2, 1000, 2000, factor=1.2) == 1440

    def test_very_long_burst_stays_at_max(self) -> None:
        """Reset counts far past the float range of factor**n should not overflow."""
        assert compute_delay(2000, 50, 2000) == 2000
        assert compute_delay(5000) == 2000
        assert compute_delay(100_000, 1000, 2000, factor=1.2) == 2000


class TestDebounceScheduler:
    """Tests for DebounceScheduler with fake timers."""

    @pytest.fixture
    def fired(self) -> list[int]:
        return []

    def make_scheduler(
        self,
        timers: FakeTimerFactory,
        fired: list[int],
        **kwargs: object,
    ) -> DebounceScheduler:
        return DebounceScheduler(
            on_fire=lambda: fired.append(1),
            min_delay=50,
            max_delay=2000,
            timer_factory=timers,
            **kwargs,  # type: ignore[arg-type]
        )

    def test_first_change_arms_min_delay(self, timers: FakeTimerFactory, fired: list[int]) -> None:
        scheduler = self.make_scheduler(timers, fired)
        assert scheduler.state == DebounceState.IDLE

        scheduler.change_occurred()

        assert scheduler.state == DebounceState.ARMED
        assert timers.last.interval == pytest.approx(0.05)
        assert timers.last.daemon is True
        assert timers.last.started is True

    def test_reset_cancels_and_backs_off(self, timers: FakeTimerFactory, fired: list[int]) -> None:
        """Each change while armed should restart the timer with a longer delay."""
        scheduler = self.make_scheduler(timers, fired)

        scheduler.change_occurred()
        scheduler.change_occurred()
        scheduler.change_occurred()

        assert [t.cancelled for t in timers.timers] == [True, True, False]
        assert [round(t.interval * 1000) for t in timers.timers] == [50, 75, 113]
        assert scheduler.consecutive_resets == 2
        assert scheduler.delay == 113

    def test_fire_calls_callback_once(self, timers: FakeTimerFactory, fired: list[int]) -> None:
        scheduler = self.make_scheduler(timers, fired)
        for _ in range(5):
            scheduler.change_occurred()

        timers.last.fire()

        assert fired == [1]
        assert scheduler.state == DebounceState.IDLE
        assert scheduler.consecutive_resets == 0

    def test_stale_timer_ignored(self, timers: FakeTimerFactory, fired: list[int]) -> None:
        """A superseded timer that fires anyway must not trigger a sync."""
        scheduler = self.make_scheduler(timers, fired)
        scheduler.change_occurred()
        scheduler.change_occurred()

        timers.timers[0].fire()

        assert fired == []
        assert scheduler.state == DebounceState.ARMED

    def test_counter_resets_after_fire(self, timers: FakeTimerFactory, fired: list[int]) -> None:
        scheduler = self.make_scheduler(timers, fired)
        scheduler.change_occurred()
        scheduler.change_occurred()
        timers.last.fire()

        scheduler.change_occurred()

        assert scheduler.delay == 50

    def test_busy_rearms_instead_of_firing(self, timers: FakeTimerFactory, fired: list[int]) -> None:
        busy = [True]
        scheduler = self.make_scheduler(timers, fired, is_busy=lambda: busy[0])
        scheduler.change_occurred()

        timers.last.fire()

        assert fired == []
        assert scheduler.state == DebounceState.ARMED
        assert len(timers.timers) == 2

        busy[0] = False
        timers.last.fire()
        assert fired == [1]

    def test_cancel(self, timers: FakeTimerFactory, fired: list[int]) -> None:
        scheduler = self.make_scheduler(timers, fired)
        scheduler.change_occurred()

        scheduler.cancel()
        timers.last.fire()

        assert timers.last.cancelled is True
        assert fired == []
        assert scheduler.state == DebounceState.IDLE

    def test_pressure_signalled_after_threshold(self, timers: FakeTimerFactory, fired: list[int]) -> None:
        pressure: list[int] = []
        scheduler = self.make_scheduler(timers, fired, on_pressure=lambda: pressure.append(1))

        for _ in range(PRESSURE_THRESHOLD):
            scheduler.change_occurred()
        assert pressure == []

        scheduler.change_occurred()
        assert pressure == [1]

        scheduler.change_occurred()
        assert pressure == [1, 1]

    def test_long_burst_keeps_one_live_timer(self, timers: FakeTimerFactory, fired: list[int]) -> None:
        """A file written continuously must not wedge the scheduler."""
        scheduler = self.make_scheduler(timers, fired)

        for _ in range(2000):
            scheduler.change_occurred()

        assert len(timers.active) == 1
        assert scheduler.delay == 2000
        assert scheduler.consecutive_resets == 1999

        timers.last.fire()
        assert fired == [1]
        assert scheduler.state == DebounceState.IDLE

    def test_real_timer_fires(self) -> None:
        """Should work with threading.Timer."""
        done = threading.Event()
        scheduler = DebounceScheduler(on_fire=done.set, min_delay=10, max_delay=50)

        scheduler.change_occurred()

        assert done.wait(2.0)

"""Shared pytest fixtures.

This module provides:
- FakeTimer / FakeTimerFactory: Deterministic stand-ins for threading.Timer
- FakeBackend: A transfer backend that replays canned rsync runs
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from synchrotron.core.config import SyncConfig


class FakeTimer:
    """Timer that only fires when the test says so."""

    def __init__(self, interval: float, function: Callable[[], None]) -> None:
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        """Run the callback as the timer thread would."""
        self.function()


class FakeTimerFactory:
    """Creates FakeTimers and remembers them in creation order."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, interval: float, function: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(interval, function)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]

    @property
    def active(self) -> list[FakeTimer]:
        return [t for t in self.timers if t.started and not t.cancelled]


@dataclass
class FakeRun:
    """One canned rsync run."""

    stdout: list[str] = field(default_factory=list)
    stderr: list[str] = field(default_factory=list)
    exit_code: int = 0
    error: OSError | None = None
    on_wait: Callable[[], None] | None = None


@dataclass
class SpawnCall:
    """Arguments of one spawn() call."""

    executable: str
    args: list[str]
    cwd: str
    paths: list[str]


class FakeProcess:
    """TransferProcess replaying a FakeRun."""

    def __init__(self, run: FakeRun, backend: FakeBackend) -> None:
        self._run = run
        self._backend = backend

    @property
    def stdout(self) -> Iterable[str]:
        return iter(self._run.stdout)

    @property
    def stderr(self) -> Iterable[str]:
        return iter(self._run.stderr)

    def wait(self) -> int:
        if self._run.on_wait is not None:
            self._run.on_wait()
        self._backend.process_exited()
        return self._run.exit_code


class FakeBackend:
    """TransferBackend that records calls and replays queued runs.

    When no runs are queued, each spawn succeeds with no output.
    """

    def __init__(self) -> None:
        self.calls: list[SpawnCall] = []
        self.alive = 0
        self.max_alive = 0
        self._runs: list[FakeRun] = []
        self._lock = threading.Lock()

    def add_run(self, **kwargs: object) -> FakeRun:
        run = FakeRun(**kwargs)  # type: ignore[arg-type]
        self._runs.append(run)
        return run

    def spawn(
        self,
        executable: str,
        args: Sequence[str],
        cwd: str,
        stdin_payload: str,
    ) -> FakeProcess:
        with self._lock:
            self.calls.append(
                SpawnCall(
                    executable=executable,
                    args=list(args),
                    cwd=cwd,
                    paths=stdin_payload.split("\n") if stdin_payload else [],
                )
            )
            run = self._runs.pop(0) if self._runs else FakeRun()
            if run.error is not None:
                raise run.error
            self.alive += 1
            self.max_alive = max(self.max_alive, self.alive)
        return FakeProcess(run, self)

    def process_exited(self) -> None:
        with self._lock:
            self.alive -= 1


@pytest.fixture
def timers() -> FakeTimerFactory:
    """Timer factory whose timers fire on demand."""
    return FakeTimerFactory()


@pytest.fixture
def backend() -> FakeBackend:
    """Fake rsync backend."""
    return FakeBackend()


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    """Source directory to sync from."""
    source = tmp_path / "src"
    source.mkdir()
    return source


@pytest.fixture
def config(source_dir: Path, tmp_path: Path) -> SyncConfig:
    """Sync config pointing at the temporary source directory."""
    return SyncConfig(
        dest=str(tmp_path / "dest"),
        source=str(source_dir),
        rsync_path="/usr/bin/rsync",
    )

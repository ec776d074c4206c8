"""Sync orchestrator that runs rsync one invocation at a time.

The orchestrator is the only component that starts transfers:
1. Serializes sync() calls so at most one rsync process is alive, in call order
2. Normalizes the requested paths and builds the rsync command line
3. Feeds the path list to rsync on stdin and parses its itemized output
4. Classifies the exit status:

    | Exit status           | Outcome     | Action                               |
    |-----------------------|-------------|--------------------------------------|
    | 0                     | SUCCESS     | Emit sync_end, return stats          |
    | 10, 11, 12, 23, 24    | RECOVERABLE | Emit warning, retry a full sync      |
    | anything else         | FATAL       | Emit error, raise TransferError      |
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Generator, Sequence
from enum import Enum, auto

from synchrotron.core.config import SyncConfig
from synchrotron.core.types import SyncState
from synchrotron.sync.events import EventEmitter, SyncEventName
from synchrotron.sync.output import TransferOutputParser, parse_stderr_line
from synchrotron.sync.paths import ROOT, normalize_paths_to_sync
from synchrotron.sync.transfer import SubprocessTransfer, TransferBackend, TransferProcess
from synchrotron.sync.types import (
    SyncEndEvent,
    SyncError,
    SyncStartEvent,
    SyncStats,
    TransferError,
    TransferSpawnError,
    WarningEvent,
)

# Arguments always passed to rsync
RSYNC_DEFAULT_ARGS = [
    "--compress",
    "--delete-during",
    "--delete",
    "--files-from=-",
    "--force",
    "--human-readable",
    "--links",
    "--omit-dir-times",
    "--out-format=%o %n",
    "--perms",
    "--recursive",
    "--times",
]

# rsync exit codes that a full resync can recover from
RECOVERABLE_EXIT_CODES = frozenset({
    10,  # Error in socket I/O
    11,  # Error in file I/O
    12,  # Error in rsync protocol data stream
    23,  # Partial transfer due to error
    24,  # Partial transfer due to vanished source files
})

RSYNC_EXIT_MESSAGES: dict[int, str] = {
    1: "Syntax or usage error",
    2: "Protocol incompatibility",
    3: "Errors selecting input/output files, dirs",
    4: "Requested action not supported",
    5: "Error starting client-server protocol",
    6: "Daemon unable to append to log-file",
    10: "Error in socket I/O",
    11: "Error in file I/O",
    12: "Error in rsync protocol data stream",
    13: "Errors with program diagnostics",
    14: "Error in IPC code",
    20: "Received SIGUSR1 or SIGINT",
    21: "Some error returned by waitpid()",
    22: "Error allocating core memory buffers",
    23: "Partial transfer due to error",
    24: "Partial transfer due to vanished source files",
    25: "The --max-delete limit stopped deletions",
    30: "Timeout in data send/receive",
    35: "Timeout waiting for daemon connection",
}


class TransferOutcome(Enum):
    """How a finished rsync run should be handled."""

    SUCCESS = auto()
    RECOVERABLE = auto()
    FATAL = auto()


def classify_exit_code(code: int) -> TransferOutcome:
    """Map an rsync exit status to an outcome."""
    if code == 0:
        return TransferOutcome.SUCCESS
    if code in RECOVERABLE_EXIT_CODES:
        return TransferOutcome.RECOVERABLE
    return TransferOutcome.FATAL


def describe_exit_code(code: int) -> str:
    """Return a human-readable message for an rsync exit status."""
    if code < 0:
        return f"rsync was terminated by signal {-code}"

    message = f"rsync exited with error code {code}"
    reason = RSYNC_EXIT_MESSAGES.get(code)
    if reason:
        message = f"{message} ({reason})"
    return message


def build_transfer_args(config: SyncConfig) -> list[str]:
    """Build the rsync argument list for a config.

    The source (with its trailing slash) and destination come last.
    """
    args = list(RSYNC_DEFAULT_ARGS)

    if config.delete_ignored:
        args.append("--delete-excluded")

    if config.dry_run:
        args.append("--dry-run")

    if config.ignore_path:
        args.append(f"--filter=merge,e- {config.ignore_path}")

    for pattern in config.exclude:
        args.append(f"--exclude={pattern}")

    args.append(config.source)
    args.append(config.dest)
    return args


class SyncOrchestrator:
    """Runs sync operations for one source directory.

    sync() blocks until its rsync run (and any recoverable retries) finish.
    Concurrent callers queue in FIFO order; listeners must not call sync()
    themselves or they will wait on their own run.

    Usage:
        orchestrator = SyncOrchestrator(config)
        stats = orchestrator.sync(["docs/readme.md"])
    """

    def __init__(
        self,
        config: SyncConfig,
        events: EventEmitter | None = None,
        backend: TransferBackend | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Sync configuration.
            events: Emitter for lifecycle events (a private one if omitted).
            backend: Transfer backend (rsync via subprocess if omitted).
            logger: Logger for diagnostics (module logger if omitted).
        """
        self._config = config
        self._events = events or EventEmitter()
        self._backend = backend or SubprocessTransfer()
        self._log = logger or logging.getLogger(__name__)

        # FIFO ticket lock: the caller holding now_serving owns the rsync slot
        self._condition = threading.Condition()
        self._next_ticket = 0
        self._now_serving = 0
        self._state = SyncState.IDLE

    @property
    def config(self) -> SyncConfig:
        return self._config

    @property
    def events(self) -> EventEmitter:
        return self._events

    @property
    def state(self) -> SyncState:
        """Whether an rsync run currently holds the slot."""
        return self._state

    @property
    def is_syncing(self) -> bool:
        """Whether a sync is running or waiting to run."""
        with self._condition:
            return self._next_ticket != self._now_serving

    def sync(self, paths: Sequence[str] | None = None) -> SyncStats:
        """Sync paths to the destination.

        A recoverable rsync error is retried as a full sync while this call
        still holds its slot, so queued calls cannot run in between.

        Args:
            paths: Paths relative to the source directory. Defaults to the
                entire source directory.

        Returns:
            Stats accumulated over the run and any recoverable retries.

        Raises:
            TransferError: rsync exited with a non-recoverable error.
            TransferSpawnError: rsync could not be started.
        """
        paths = [ROOT] if paths is None else list(paths)

        with self._condition:
            ticket = self._next_ticket
            self._next_ticket += 1
            if ticket != self._now_serving:
                self._log.debug("Sync already in progress; waiting (ticket %d)", ticket)
            while ticket != self._now_serving:
                self._condition.wait()
            self._state = SyncState.RUNNING

        try:
            return self._sync_with_retries(paths)
        finally:
            with self._condition:
                self._now_serving += 1
                self._state = SyncState.IDLE
                self._condition.notify_all()

    def _sync_with_retries(self, paths: list[str]) -> SyncStats:
        stats = SyncStats()

        while True:
            if len(paths) > self._config.max_sync_limit:
                self._log.debug(
                    "%d paths exceed the sync limit of %d; syncing everything",
                    len(paths),
                    self._config.max_sync_limit,
                )
                paths = [ROOT]

            paths = normalize_paths_to_sync(self._config.source, paths)
            self._events.emit(SyncEventName.SYNC_START, SyncStartEvent(paths=paths))

            if not paths:
                self._events.emit(SyncEventName.SYNC_END, SyncEndEvent(paths=paths, stats=stats))
                return stats

            code, items_synced = self._run_transfer(paths)
            stats.attempts += 1
            stats.items_synced += items_synced
            self._log.debug("rsync exited with code %d", code)

            outcome = classify_exit_code(code)

            if outcome == TransferOutcome.SUCCESS:
                self._events.emit(SyncEventName.SYNC_END, SyncEndEvent(paths=paths, stats=stats))
                return stats

            if outcome == TransferOutcome.RECOVERABLE:
                self._events.emit(
                    SyncEventName.WARNING,
                    WarningEvent(
                        message=f"{describe_exit_code(code)}; will retry a full sync "
                        f"({items_synced} items synced before the error)"
                    ),
                )
                paths = [ROOT]
                continue

            error = TransferError(code, describe_exit_code(code))
            self._fail(error)
            raise error

    def _run_transfer(self, paths: list[str]) -> tuple[int, int]:
        """Run rsync once and return (exit status, items synced)."""
        args = build_transfer_args(self._config)
        self._log.debug("Spawning %s with args %s", self._config.rsync_path, args)
        self._log.debug("Syncing %s", paths)

        try:
            process = self._backend.spawn(
                self._config.rsync_path,
                args,
                cwd=self._config.source,
                stdin_payload="\n".join(paths),
            )
        except OSError as e:
            error = TransferSpawnError(self._config.rsync_path, e.strerror or str(e))
            self._fail(error)
            raise error from e

        stderr_reader = threading.Thread(
            target=self._pump_stderr,
            args=(process,),
            name="TransferStderrReader",
            daemon=True,
        )
        stderr_reader.start()

        parser = TransferOutputParser()
        lines = iter(process.stdout)
        try:
            for line in lines:
                self._events.emit(SyncEventName.RSYNC_STDOUT, parser.parse(line))
        finally:
            # Closing the pipe early lets a process we stopped reading exit
            if isinstance(lines, Generator):
                lines.close()
            code = process.wait()
            stderr_reader.join()
        return code, parser.items_synced

    def _pump_stderr(self, process: TransferProcess) -> None:
        for line in process.stderr:
            self._events.emit(SyncEventName.RSYNC_STDERR, parse_stderr_line(line))

    def _fail(self, error: SyncError) -> None:
        self._log.debug("Sync failed: %s", error)
        self._events.emit(SyncEventName.ERROR, error)

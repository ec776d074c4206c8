"""Change aggregation and sync scheduling.

Architecture:
    FileWatcher → ChangeCoalescer → DebounceScheduler → SyncOrchestrator → rsync

Components:
- **FileWatcher**: Watches the source directory with watchdog
- **ChangeCoalescer**: Keeps the minimal set of paths that need syncing
- **DebounceScheduler**: Waits for bursts of changes to settle, with backoff
- **SyncOrchestrator**: Runs rsync one invocation at a time and classifies exits
- **TransferOutputParser**: Parses rsync's itemized output
- **Synchrotron**: Facade wiring the above together
"""

from synchrotron.sync.coalescer import ChangeCoalescer
from synchrotron.sync.debounce import (
    DEFAULT_BACKOFF_FACTOR,
    PRESSURE_THRESHOLD,
    DebounceScheduler,
    compute_delay,
)
from synchrotron.sync.engine import Synchrotron, load_ignore_patterns
from synchrotron.sync.events import EventEmitter, SyncEventName
from synchrotron.sync.ignore import IgnorePatterns
from synchrotron.sync.orchestrator import (
    RECOVERABLE_EXIT_CODES,
    RSYNC_DEFAULT_ARGS,
    SyncOrchestrator,
    TransferOutcome,
    build_transfer_args,
    classify_exit_code,
    describe_exit_code,
)
from synchrotron.sync.output import (
    OperationKind,
    OutputRecord,
    TransferOutputParser,
    parse_output_line,
)
from synchrotron.sync.paths import (
    ROOT,
    is_ancestor,
    nearest_existing_path,
    normalize_paths_to_sync,
    parent_paths,
)
from synchrotron.sync.transfer import SubprocessTransfer, TransferBackend, TransferProcess
from synchrotron.sync.types import (
    DebounceEvent,
    SyncEndEvent,
    SyncError,
    SyncStartEvent,
    SyncStats,
    TransferError,
    TransferSpawnError,
    WarningEvent,
)
from synchrotron.sync.watcher import FileWatcher

__all__ = [
    # Paths
    "ROOT",
    "is_ancestor",
    "nearest_existing_path",
    "normalize_paths_to_sync",
    "parent_paths",
    # Coalescing & debounce
    "ChangeCoalescer",
    "DEFAULT_BACKOFF_FACTOR",
    "DebounceScheduler",
    "PRESSURE_THRESHOLD",
    "compute_delay",
    # Orchestration
    "RECOVERABLE_EXIT_CODES",
    "RSYNC_DEFAULT_ARGS",
    "SyncOrchestrator",
    "TransferOutcome",
    "build_transfer_args",
    "classify_exit_code",
    "describe_exit_code",
    # Output parsing
    "OperationKind",
    "OutputRecord",
    "TransferOutputParser",
    "parse_output_line",
    # Transfer backends
    "SubprocessTransfer",
    "TransferBackend",
    "TransferProcess",
    # Events and types
    "DebounceEvent",
    "EventEmitter",
    "SyncEndEvent",
    "SyncError",
    "SyncEventName",
    "SyncStartEvent",
    "SyncStats",
    "TransferError",
    "TransferSpawnError",
    "WarningEvent",
    # Engine
    "FileWatcher",
    "IgnorePatterns",
    "Synchrotron",
    "load_ignore_patterns",
]

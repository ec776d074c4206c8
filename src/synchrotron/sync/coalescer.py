"""Pending-path set that coalesces filesystem changes between syncs.

The coalescer keeps the smallest set of paths that covers every change seen
since the last drain:
- A path is skipped when one of its parents is already pending
- Adding a path drops any pending descendants
- A deleted path is replaced by its parent directory
- Once ROOT is pending it is the only member and further changes are no-ops
"""

from __future__ import annotations

import logging
import posixpath
import threading

from synchrotron.core.types import ChangeKind
from synchrotron.sync.paths import ROOT, is_ancestor, parent_paths

logger = logging.getLogger(__name__)


class ChangeCoalescer:
    """Thread-safe set of relative paths waiting to be synced."""

    def __init__(self, max_paths: int | None = None) -> None:
        """Initialize an empty pending set.

        Args:
            max_paths: Collapse to ROOT once more than this many paths are
                pending (None = unlimited).
        """
        self._max_paths = max_paths
        self._pending: dict[str, None] = {}  # insertion-ordered set
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._pending

    @property
    def pending(self) -> list[str]:
        """Snapshot of the pending paths."""
        with self._lock:
            return list(self._pending)

    def record_change(self, kind: ChangeKind, path: str) -> bool:
        """Record a change to a path relative to the source directory.

        Args:
            kind: What happened to the path.
            path: POSIX path relative to the source directory.

        Returns:
            True if a sync should be scheduled. False when nothing is pending
            or ROOT was already pending (the scheduled sync covers it).
        """
        path = posixpath.normpath(path)

        with self._lock:
            if ROOT in self._pending:
                return False

            if kind == ChangeKind.REMOVED:
                # A deleted path can't be handed to rsync. Sync its parent
                # instead so rsync notices the deletion.
                self._pending.pop(path, None)
                self._add(posixpath.dirname(path) or ROOT)
            else:
                self._add(path)

            return bool(self._pending)

    def drain(self) -> list[str]:
        """Return all pending paths and clear the set."""
        with self._lock:
            paths = list(self._pending)
            self._pending.clear()
            return paths

    def clear(self) -> None:
        """Discard all pending paths."""
        with self._lock:
            self._pending.clear()

    def _add(self, path: str) -> None:
        """Add a path, keeping the no-ancestor/descendant invariant.

        Must be called with the lock held.
        """
        if path == ROOT:
            self._collapse_to_root()
            return

        if path in self._pending:
            return

        if any(parent in self._pending for parent in parent_paths(path)):
            return

        for pending in [p for p in self._pending if is_ancestor(path, p)]:
            del self._pending[pending]

        self._pending[path] = None

        if self._max_paths is not None and len(self._pending) > self._max_paths:
            logger.debug(
                "More than %d paths pending; syncing the entire source instead",
                self._max_paths,
            )
            self._collapse_to_root()

    def _collapse_to_root(self) -> None:
        self._pending.clear()
        self._pending[ROOT] = None

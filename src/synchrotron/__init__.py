"""Synchrotron - watch a directory and mirror it to a destination with rsync."""

from synchrotron.core.config import SyncConfig
from synchrotron.core.types import ChangeKind
from synchrotron.sync.engine import Synchrotron
from synchrotron.sync.events import SyncEventName

__version__ = "2.1.0"

__all__ = [
    "ChangeKind",
    "SyncConfig",
    "SyncEventName",
    "Synchrotron",
    "__version__",
]

"""Parser for rsync's ``--out-format=%o %n`` output.

Each stdout line is either an itemized file operation ("send foo.txt",
"del. old/") or some other diagnostic that rsync printed. Operations count
toward the items synced; everything else is surfaced as a warning.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum


class OperationKind(Enum):
    """File operations rsync reports with ``%o``."""

    DELETE = "del."
    SEND = "send"


OPERATION_LABELS: dict[OperationKind, str] = {
    OperationKind.DELETE: "d",
    OperationKind.SEND: ">",
}

WARNING_LABEL = "!"

_OPERATIONS = {kind.value: kind for kind in OperationKind}
_FIRST_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class OutputRecord:
    """One parsed line of rsync output.

    Attributes:
        line: The complete line as printed.
        message: The affected path for operations, otherwise the whole line.
        operation: The file operation, or None for diagnostic output.
        level: Logging level the line should be reported at.
    """

    line: str
    message: str
    operation: OperationKind | None = None
    level: int = logging.WARNING

    @property
    def is_operation(self) -> bool:
        """Whether this line reports a synced item."""
        return self.operation is not None

    @property
    def label(self) -> str:
        """Short CLI label: "d" for deletes, ">" for sends, "!" otherwise."""
        if self.operation is None:
            return WARNING_LABEL
        return OPERATION_LABELS[self.operation]


def parse_output_line(line: str) -> OutputRecord:
    """Classify a single line of rsync stdout."""
    parts = _FIRST_WHITESPACE.split(line, maxsplit=1)
    operation = _OPERATIONS.get(parts[0])

    if operation is not None and len(parts) == 2:
        return OutputRecord(
            line=line,
            message=parts[1],
            operation=operation,
            level=logging.INFO,
        )

    return OutputRecord(line=line, message=line)


def parse_stderr_line(line: str) -> OutputRecord:
    """Wrap a line of rsync stderr as a warning record."""
    return OutputRecord(line=line, message=line)


class TransferOutputParser:
    """Parses the stdout of one rsync run and counts synced items."""

    def __init__(self) -> None:
        self.items_synced = 0

    def parse(self, line: str) -> OutputRecord:
        record = parse_output_line(line)
        if record.is_operation:
            self.items_synced += 1
        return record

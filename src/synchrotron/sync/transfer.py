"""Transfer backends that run the external mirroring process.

This module provides:
- TransferProcess / TransferBackend: The interface the orchestrator relies on
- SubprocessTransfer: Runs rsync (or anything rsync-compatible) via subprocess

The orchestrator only needs line iterators for stdout and stderr and the exit
status, so tests can substitute a fake backend that replays canned output.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from collections.abc import Iterable, Iterator, Sequence
from typing import IO, Protocol

logger = logging.getLogger(__name__)


class TransferProcess(Protocol):
    """A running transfer process."""

    @property
    def stdout(self) -> Iterable[str]:
        """Lines written to stdout, without line terminators."""
        ...

    @property
    def stderr(self) -> Iterable[str]:
        """Lines written to stderr, without line terminators."""
        ...

    def wait(self) -> int:
        """Block until the process exits and return its exit status."""
        ...


class TransferBackend(Protocol):
    """Something that can start a transfer process."""

    def spawn(
        self,
        executable: str,
        args: Sequence[str],
        cwd: str,
        stdin_payload: str,
    ) -> TransferProcess:
        """Start the process, feeding ``stdin_payload`` then closing stdin.

        Raises:
            OSError: If the executable is missing or can't be executed.
        """
        ...


def _iter_lines(stream: IO[str] | None) -> Iterator[str]:
    if stream is None:
        return
    with stream:
        for line in stream:
            yield line.rstrip("\r\n")


class _PopenProcess:
    """TransferProcess backed by subprocess.Popen."""

    def __init__(self, process: subprocess.Popen[str], stdin_payload: str) -> None:
        self._process = process

        # Feed stdin from a separate thread so a chatty process can't block
        # on a full stdout pipe while we're still writing its file list.
        self._writer = threading.Thread(
            target=self._write_stdin,
            args=(stdin_payload,),
            name="TransferStdinWriter",
            daemon=True,
        )
        self._writer.start()

    def _write_stdin(self, payload: str) -> None:
        stdin = self._process.stdin
        if stdin is None:
            return
        try:
            stdin.write(payload)
            stdin.close()
        except BrokenPipeError:
            # The process exited before reading everything; its exit status
            # reports why.
            logger.debug("Transfer process closed stdin early")

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def stdout(self) -> Iterator[str]:
        return _iter_lines(self._process.stdout)

    @property
    def stderr(self) -> Iterator[str]:
        return _iter_lines(self._process.stderr)

    def wait(self) -> int:
        code = self._process.wait()
        self._writer.join()
        return code


class SubprocessTransfer:
    """Spawns the transfer executable as a child process."""

    def spawn(
        self,
        executable: str,
        args: Sequence[str],
        cwd: str,
        stdin_payload: str,
    ) -> TransferProcess:
        process = subprocess.Popen(
            [executable, *args],
            cwd=cwd,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
        logger.debug("Spawned %s (pid %d)", executable, process.pid)
        return _PopenProcess(process, stdin_payload)

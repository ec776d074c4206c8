"""Command-line interface for synchrotron.

This module provides the main CLI entry point.

Commands:
- synchrotron: Sync a directory to a destination and keep it in sync
"""

from __future__ import annotations

from synchrotron.cli.config import (
    IGNORE_FILE_NAME,
    find_ignore_file,
    find_rsync,
    find_up,
    load_config_file,
)
from synchrotron.cli.sync import sync

cli = sync


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "IGNORE_FILE_NAME",
    "find_ignore_file",
    "find_rsync",
    "find_up",
    "load_config_file",
]

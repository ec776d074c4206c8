"""Configuration utilities for the synchrotron CLI.

This module provides:
- load_config_file: Read options from a JSON config file
- find_ignore_file: Locate a .synchrotron-ignore file above the source directory
- find_rsync: Locate the rsync executable on PATH
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Any

IGNORE_FILE_NAME = ".synchrotron-ignore"


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Load options from a JSON config file.

    Keys may use dashes or underscores ("ignore-path" or "ignore_path").
    An empty file is an empty config.

    Raises:
        ValueError: If the file isn't valid JSON or isn't a JSON object.
    """
    text = Path(path).read_text(encoding="utf-8").strip()
    if not text:
        return {}

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")

    return {str(key).replace("-", "_"): value for key, value in data.items()}


def find_up(name: str, start: str | Path | None = None) -> Path | None:
    """Search upward from ``start`` (default: cwd) for a file called ``name``.

    Returns the Path if found, or None if no parent directory contains it.
    """
    current = Path(start or Path.cwd()).resolve()
    while True:
        candidate = current / name
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def find_ignore_file(source: str | Path) -> Path | None:
    """Find the nearest .synchrotron-ignore at or above the source directory."""
    return find_up(IGNORE_FILE_NAME, source)


def find_rsync() -> str | None:
    """Return the path of the rsync executable on PATH, if any."""
    return shutil.which("rsync")

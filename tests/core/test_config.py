"""Tests for core configuration classes."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from synchrotron.core.config import (
    DEFAULT_DEBOUNCE_MAX,
    DEFAULT_DEBOUNCE_MIN,
    DEFAULT_MAX_SYNC_LIMIT,
    SyncConfig,
)


class TestSyncConfig:
    """Tests for SyncConfig class."""

    def test_init_basic(self, tmp_path: Path) -> None:
        """Should initialize with defaults."""
        config = SyncConfig(dest="host:/srv/site", source=str(tmp_path))
        assert config.dest == "host:/srv/site"
        assert config.dry_run is False
        assert config.delete_ignored is False
        assert config.ignore_path is None
        assert config.exclude == []
        assert config.debounce_min == DEFAULT_DEBOUNCE_MIN
        assert config.debounce_max == DEFAULT_DEBOUNCE_MAX
        assert config.max_sync_limit == DEFAULT_MAX_SYNC_LIMIT

    def test_source_gets_trailing_slash(self, tmp_path: Path) -> None:
        """Should make the source absolute with exactly one trailing slash."""
        config = SyncConfig(dest="d", source=str(tmp_path))
        assert config.source == str(tmp_path) + "/"

        config = SyncConfig(dest="d", source=str(tmp_path) + "/")
        assert config.source == str(tmp_path) + "/"

    def test_relative_source_made_absolute(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        config = SyncConfig(dest="d", source=".")
        assert config.source == os.path.join(os.getcwd(), "")

    def test_watch_path_has_no_trailing_slash(self, tmp_path: Path) -> None:
        config = SyncConfig(dest="d", source=str(tmp_path))
        assert config.watch_path == str(tmp_path)

    def test_ignore_path_made_absolute(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        config = SyncConfig(dest="d", source=".", ignore_path=".synchrotron-ignore")
        assert config.ignore_path == os.path.join(os.getcwd(), ".synchrotron-ignore")

    def test_empty_ignore_path_is_none(self, tmp_path: Path) -> None:
        config = SyncConfig(dest="d", source=str(tmp_path), ignore_path="")
        assert config.ignore_path is None

    def test_exclude_copied(self, tmp_path: Path) -> None:
        patterns = ["*.log"]
        config = SyncConfig(dest="d", source=str(tmp_path), exclude=patterns)
        patterns.append("*.tmp")
        assert config.exclude == ["*.log"]

    def test_missing_dest(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="destination"):
            SyncConfig(dest="", source=str(tmp_path))

    def test_negative_debounce_min(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="debounce_min"):
            SyncConfig(dest="d", source=str(tmp_path), debounce_min=-1)

    def test_debounce_max_below_min(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="debounce_max"):
            SyncConfig(dest="d", source=str(tmp_path), debounce_min=500, debounce_max=100)

    def test_max_sync_limit_positive(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="max_sync_limit"):
            SyncConfig(dest="d", source=str(tmp_path), max_sync_limit=0)

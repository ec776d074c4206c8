"""Ignore patterns for filtering watcher events.

This module provides:
- IgnoreRule: One include or exclude rule
- IgnorePatterns: Matches relative paths against rsync-style filter rules

The same ignore file is handed to rsync as a merge filter, so this is only a
first pass that keeps ignored paths out of the pending set. Matching follows
the common subset of rsync filter rules:
- Rules are checked in order and the first match decides
- "name" or "*.log" matches any path component at any depth
- "foo/bar" matches the trailing components of a path at any depth
- "/build" (leading slash) is anchored to the source directory
- "cache/" (trailing slash) matches directories only
- "- pattern" is an exclude, "+ pattern" an include, a bare pattern an exclude
- "!" clears every rule before it
- "#" and ";" start comments in files
"""

from __future__ import annotations

import fnmatch
import logging
import os
import posixpath
from pathlib import Path
from typing import NamedTuple

logger = logging.getLogger(__name__)


class IgnoreRule(NamedTuple):
    """A single filter rule."""

    pattern: str
    include: bool = False


def parse_rule(text: str) -> IgnoreRule | None:
    """Parse one rule, honoring "+ " and "- " prefixes."""
    text = text.strip()
    include = False
    if text.startswith("+ "):
        include = True
        text = text[2:].strip()
    elif text.startswith("- "):
        text = text[2:].strip()
    if not text:
        return None
    return IgnoreRule(text, include)


class IgnorePatterns:
    """Handles ignore rule matching for paths relative to a source root."""

    def __init__(
        self,
        patterns: list[str] | None = None,
        base_path: str | Path | None = None,
    ) -> None:
        """Initialize with patterns.

        Args:
            patterns: rsync-style rules, excludes unless prefixed with "+ ".
            base_path: Source directory, used to tell whether a path is a
                directory for patterns ending in "/".
        """
        self._rules: list[IgnoreRule] = []
        self._base_path = str(base_path) if base_path is not None else None
        self._cache: dict[str, bool] = {}

        for pattern in patterns or []:
            self.add_pattern(pattern)

    @property
    def rules(self) -> list[IgnoreRule]:
        return list(self._rules)

    @property
    def patterns(self) -> list[str]:
        return [rule.pattern for rule in self._rules]

    def add_pattern(self, pattern: str) -> None:
        """Append a rule. A lone "!" clears the rules added so far."""
        if pattern.strip() == "!":
            self._rules.clear()
            self._cache.clear()
            return

        rule = parse_rule(pattern)
        if rule is not None:
            self._rules.append(rule)
            self._cache.clear()

    def load_from_file(self, path: str | Path) -> None:
        """Append the rules in an ignore file."""
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                # Skip comments and empty lines
                if not line or line.startswith(("#", ";")):
                    continue
                self.add_pattern(line)

    def is_ignored(self, path: str) -> bool:
        """Check if a path relative to the source directory should be ignored.

        Each parent directory is checked first, the way rsync walks the tree,
        so an excluded directory hides everything below it.
        """
        path = posixpath.normpath(path)
        if path in self._cache:
            return self._cache[path]

        segments = path.split("/")
        ignored = any(
            self._excludes(segments[:end], is_last=end == len(segments), path=path)
            for end in range(1, len(segments) + 1)
        )
        self._cache[path] = ignored

        if ignored:
            logger.debug("Ignoring %s", path)
        return ignored

    def __call__(self, path: str) -> bool:
        return self.is_ignored(path)

    def _excludes(self, prefix: list[str], is_last: bool, path: str) -> bool:
        """Return the decision of the first rule matching ``prefix``."""
        for rule in self._rules:
            if self._matches(rule.pattern, prefix, is_last, path):
                return not rule.include
        return False

    def _matches(self, pattern: str, prefix: list[str], is_last: bool, path: str) -> bool:
        dir_only = pattern.endswith("/")
        if dir_only:
            pattern = pattern.rstrip("/")
            # Parents of the path are directories; the path itself may not be
            if is_last and not self._is_dir(path):
                return False

        anchored = pattern.startswith("/")
        pattern = pattern.lstrip("/")

        if "**" in pattern:
            starts = [0] if anchored else range(len(prefix))
            return any(fnmatch.fnmatchcase("/".join(prefix[start:]), pattern) for start in starts)

        # Without "**", a wildcard never crosses "/", so compare exactly as many
        # components as the pattern has
        depth = pattern.count("/") + 1
        if len(prefix) < depth or (anchored and len(prefix) != depth):
            return False
        return fnmatch.fnmatchcase("/".join(prefix[-depth:]), pattern)

    def _is_dir(self, path: str) -> bool:
        if self._base_path is None:
            return False
        return os.path.isdir(os.path.join(self._base_path, path))

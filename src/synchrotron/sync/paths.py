"""Path helpers for turning changed paths into paths rsync can sync.

This module provides:
- ROOT: Sentinel path meaning "sync the entire source directory"
- parent_paths: Ancestor chain of a POSIX path
- nearest_existing_path: Resolve a vanished path to its nearest existing ancestor
- normalize_paths_to_sync: Dedupe and resolve a batch of changed paths
"""

from __future__ import annotations

import os
import posixpath
from collections.abc import Callable, Iterable

ROOT = "."


def parent_paths(path: str) -> list[str]:
    """Return each parent of a relative or absolute POSIX path, root first.

    Example:
        >>> parent_paths("foo/bar/baz/quux")
        ['foo', 'foo/bar', 'foo/bar/baz']
        >>> parent_paths("/foo/bar/baz/quux")
        ['/', '/foo', '/foo/bar', '/foo/bar/baz']
    """
    segments = posixpath.normpath(path).split("/")[:-1]
    parents: list[str] = []

    for index, segment in enumerate(segments):
        if index == 0:
            parents.append(segment or "/")
        else:
            parents.append(posixpath.join(parents[-1], segment))

    return parents


def is_ancestor(ancestor: str, path: str) -> bool:
    """Check whether ``ancestor`` strictly contains ``path``.

    The ROOT sentinel is an ancestor of every other relative path.
    """
    if ancestor == path:
        return False
    if ancestor == ROOT:
        return True
    return ancestor in parent_paths(path)


def nearest_existing_path(
    base_path: str,
    path: str,
    exists: Callable[[str], bool] = os.path.lexists,
) -> str:
    """Return the nearest path, starting from ``path``, that exists in ``base_path``.

    Parents are checked deepest first. ``base_path`` itself is assumed to
    exist, so ROOT is returned when nothing below it does.

    Args:
        base_path: Absolute directory that ``path`` is relative to.
        path: Relative path at which to start searching.
        exists: Existence check, ``os.path.lexists`` by default so dangling
            symlinks still count.

    Returns:
        ``path``, one of its parents, or ROOT.
    """
    if exists(os.path.join(base_path, path)):
        return path

    for parent in reversed(parent_paths(path)):
        if exists(os.path.join(base_path, parent)):
            return parent

    return ROOT


def normalize_paths_to_sync(
    base_path: str,
    paths: Iterable[str],
    exists: Callable[[str], bool] = os.path.lexists,
) -> list[str]:
    """Normalize changed paths relative to ``base_path`` before syncing.

    Duplicates are removed, vanished paths are resolved to their nearest
    existing parent, and paths already covered by another resolved parent are
    dropped. Applying this twice gives the same result as applying it once.

    Args:
        base_path: Absolute source directory.
        paths: Relative paths to sync.
        exists: Existence check passed to ``nearest_existing_path``.

    Returns:
        Normalized relative paths in first-seen order, or ``[ROOT]`` when the
        entire source directory should be synced.
    """
    paths = [posixpath.normpath(path) for path in paths]
    if ROOT in paths:
        return [ROOT]

    resolved: dict[str, None] = {}

    for path in paths:
        if path in resolved:
            continue

        nearest = nearest_existing_path(base_path, path, exists)
        if nearest == ROOT:
            return [ROOT]

        resolved[nearest] = None

    return [
        path
        for path in resolved
        if not any(parent in resolved for parent in parent_paths(path))
    ]

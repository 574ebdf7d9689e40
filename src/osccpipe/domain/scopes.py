"""Scope-path utilities shared by the pipeline stages.

Directory scopes are matched on path-segment boundaries: ``lib`` encloses
``lib/a.js`` and ``lib/sub`` but not ``library/a.js``. Among several enclosing
directory scopes the one leaving the shortest remaining suffix wins.
"""

from __future__ import annotations

from fnmatch import fnmatchcase
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from osccpipe.domain.model import ScopeLevel

if TYPE_CHECKING:
    from collections.abc import Iterable

    from osccpipe.domain.model import DirLicensing, Package


def normalize_path(path: str) -> str:
    return path.replace("\\", "/")


def strip_package_root(package: Package, path: str) -> str:
    """Return ``path`` relative to the package's source root, without a leading slash."""

    normalized = normalize_path(path)
    root = normalize_path(package.source_root)
    if root and normalized.startswith(root):
        normalized = normalized[len(root) :]
    return normalized.removeprefix("/")


def dir_scope_path(package: Package, file_scope: str) -> str:
    """Directory part of ``file_scope``; blank for files at the package root."""

    path = normalize_path(file_scope)
    root = normalize_path(package.source_root)
    if root and path.startswith(root):
        path = path[len(root) :]
    path = path.removeprefix("/")
    head, separator, _ = path.rpartition("/")
    return head if separator else ""


def is_within(path: str, scope: str) -> bool:
    """True if ``scope`` is ``path`` itself or one of its ancestor directories."""

    if not scope:
        return True
    return path == scope or path.startswith(scope.rstrip("/") + "/")


def best_matching_dir(package: Package, path: str) -> DirLicensing | None:
    """Closest directory scope enclosing ``path``; ``None`` means the default scope applies."""

    if not path:
        return None
    return _closest(
        (dir_licensing for dir_licensing in package.dir_licensings if is_within(path, dir_licensing.scope)),
        path,
    )


def parent_dir(package: Package, dir_licensing: DirLicensing) -> DirLicensing | None:
    """Closest directory scope strictly enclosing ``dir_licensing``."""

    return _closest(
        (
            candidate
            for candidate in package.dir_licensings
            if candidate.scope != dir_licensing.scope and is_within(dir_licensing.scope, candidate.scope)
        ),
        dir_licensing.scope,
    )


def _closest(candidates: Iterable[DirLicensing], path: str) -> DirLicensing | None:
    best: DirLicensing | None = None
    best_remaining = -1
    for candidate in candidates:
        remaining = len(path) - len(candidate.scope)
        if best is None or remaining < best_remaining:
            best = candidate
            best_remaining = remaining
    return best


def matches_scope_pattern(file_name: str, patterns: Iterable[str], *, lowercase: bool = True) -> bool:
    name = file_name.lower() if lowercase else file_name
    return any(fnmatchcase(name, pattern.lower() if lowercase else pattern) for pattern in patterns)


def scope_level(
    package: Package,
    path: str,
    patterns: Iterable[str],
    *,
    lowercase: bool = True,
) -> ScopeLevel:
    """Classify ``path``: license-file names open a default or directory scope."""

    relative = strip_package_root(package, path)
    if not matches_scope_pattern(PurePosixPath(relative).name, patterns, lowercase=lowercase):
        return ScopeLevel.FILE
    return ScopeLevel.DEFAULT if "/" not in relative else ScopeLevel.DIR


def fits_in_scopes(path: str, scopes: Iterable[str]) -> bool:
    """True if ``path`` lies in any of ``scopes`` (blank scope means everywhere)."""

    return any(is_within(path, scope) for scope in scopes)

"""Working-directory blob store with reference-counted garbage collection."""

from __future__ import annotations

import filecmp
import logging
import shutil
from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING

from osccpipe.domain.errors import StageIOError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from osccpipe.domain.model import Project

log = logging.getLogger(__name__)


def reference_counts(project: Project) -> Counter[str]:
    """Count references to every archive path across all scopes of all packages."""

    return Counter(project.archive_references())


class BlobStore:
    """Files of an unpacked archive, addressed by their archive-relative path."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def path_of(self, name: str) -> Path:
        return self.root / name

    def exists(self, name: str) -> bool:
        return self.path_of(name).is_file()

    def names(self) -> set[str]:
        if not self.root.exists():
            return set()
        return {
            path.relative_to(self.root).as_posix() for path in self.root.rglob("*") if path.is_file()
        }

    def release(self, project: Project, candidates: Iterable[str | None]) -> list[str]:
        """Delete candidate blobs that no scope of ``project`` references any more.

        Counts are taken from a full scan after the caller finished detaching facts,
        so the order in which facts were removed does not matter.
        """

        pending = sorted({name for name in candidates if name is not None})
        if not pending:
            return []
        counts = reference_counts(project)
        deleted: list[str] = []
        for name in pending:
            if counts[name] > 0:
                continue
            path = self.path_of(name)
            if not path.is_file():
                continue
            try:
                path.unlink()
            except OSError as exc:
                raise StageIOError(f"Cannot delete archive entry {name}: {exc}") from exc
            deleted.append(name)
        if deleted:
            log.debug("Released %d archive entries", len(deleted))
        return deleted

    def add(self, source: Path, name: str) -> str:
        """Copy ``source`` into the store under ``name`` (suffixed ``_2``, ``_3``... if taken)."""

        target_name = self.unique_name(name)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, self.path_of(target_name))
        except OSError as exc:
            raise StageIOError(f"Cannot copy {source} into the archive: {exc}") from exc
        return target_name

    def unique_name(self, name: str) -> str:
        if not self.exists(name):
            return name
        counter = 2
        while self.exists(f"{name}_{counter}"):
            counter += 1
        return f"{name}_{counter}"

    def copy_from(self, other: BlobStore, name: str, target_name: str) -> str:
        """Copy ``name`` from ``other`` into this store as ``target_name``.

        An existing ``target_name`` is reused only if it holds the same bytes.
        """

        source = other.path_of(name)
        if not source.is_file():
            raise StageIOError(f"Archive entry {name} is missing in {other.root}")
        if self.exists(target_name):
            if not filecmp.cmp(source, self.path_of(target_name), shallow=False):
                raise StageIOError(
                    f"Archive entry {target_name} already holds different content than {name}"
                )
            return target_name
        target = self.path_of(target_name)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        except OSError as exc:
            raise StageIOError(f"Cannot copy archive entry {name}: {exc}") from exc
        return target_name

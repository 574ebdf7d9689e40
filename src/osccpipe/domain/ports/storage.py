"""Ports for reading and writing records and their archives."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path

    from osccpipe.domain.model import Project


@runtime_checkable
class RecordRepository(Protocol):
    """Load and store compliance records; failures surface as ``StageIOError``."""

    def load(self, path: Path) -> Project: ...

    def save(self, project: Project, path: Path) -> None: ...


@runtime_checkable
class ArchiveService(Protocol):
    """Opaque pack/unpack of the license-text archive."""

    def unpack(self, archive: Path, destination: Path) -> None: ...

    def pack(self, source: Path, archive: Path) -> None: ...


__all__ = ["ArchiveService", "RecordRepository"]

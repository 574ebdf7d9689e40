"""Domain port definitions for adapters."""

from __future__ import annotations

from .storage import ArchiveService, RecordRepository

__all__ = ["ArchiveService", "RecordRepository"]

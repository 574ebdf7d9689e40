"""OSCC record adapter."""

from __future__ import annotations

from .repository import JsonRecordRepository
from .translator import to_document, translate_document

__all__ = ["JsonRecordRepository", "to_document", "translate_document"]

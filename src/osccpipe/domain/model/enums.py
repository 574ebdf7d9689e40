"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Severity(StrEnum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def prefix(self) -> str:
        return _SEVERITY_PREFIX[self]


_SEVERITY_PREFIX = {Severity.INFO: "I", Severity.WARNING: "W", Severity.ERROR: "E"}


class Phase(StrEnum):
    """Pipeline stage an issue was raised in."""

    CURATION = "curation"
    DEDUPLICATION = "deduplication"
    RESOLUTION = "resolution"
    SELECTION = "selection"
    METADATA = "metadata"
    MERGE = "merge"
    VALIDATION = "validation"


class DistributionType(StrEnum):
    DISTRIBUTED = "DISTRIBUTED"
    PREINSTALLED = "PREINSTALLED"
    DEV = "DEV"


class ScopeLevel(StrEnum):
    FILE = "file"
    DIR = "dir"
    DEFAULT = "default"

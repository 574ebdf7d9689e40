"""Domain model for compliance records."""

from __future__ import annotations

from .enums import DistributionType, Phase, ScopeLevel, Severity
from .identifier import Identifier
from .issues import IssueEntry, IssueList
from .record import (
    DEFAULT_ARCHIVE_PATH,
    FOUND_IN_FILE_SCOPE_CONFIGURED,
    FOUND_IN_FILE_SCOPE_DECLARED,
    NOASSERTION,
    SENTINEL_PATHS,
    ArtifactCollection,
    CopyrightFact,
    DirLicensing,
    FileCopyright,
    FileLicense,
    FileLicensing,
    LicenseFact,
    Package,
    Project,
)

__all__ = [
    "DEFAULT_ARCHIVE_PATH",
    "FOUND_IN_FILE_SCOPE_CONFIGURED",
    "FOUND_IN_FILE_SCOPE_DECLARED",
    "NOASSERTION",
    "SENTINEL_PATHS",
    "ArtifactCollection",
    "CopyrightFact",
    "DirLicensing",
    "DistributionType",
    "FileCopyright",
    "FileLicense",
    "FileLicensing",
    "Identifier",
    "IssueEntry",
    "IssueList",
    "LicenseFact",
    "Package",
    "Phase",
    "Project",
    "ScopeLevel",
    "Severity",
]

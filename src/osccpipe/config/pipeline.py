"""Per-stage defaults for the record transformation pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from .env import env_flag, env_int, env_list
from .errors import ConfigurationError

MIN_ISSUE_LEVEL: Final[int] = -1
MAX_ISSUE_LEVEL: Final[int] = 2
DEFAULT_ISSUE_LEVEL: Final[int] = 2

MERGE_POLICIES: Final[tuple[str, ...]] = ("first-wins", "reject")
DEFAULT_MERGE_POLICY: Final[str] = "first-wins"
DEFAULT_MERGE_CID: Final[str] = "merged"
DEFAULT_MERGE_ARCHIVE: Final[str] = "merged"

DEFAULT_LICENSE_SCOPE_PATTERNS: Final[tuple[str, ...]] = (
    "license*",
    "licence*",
    "copying*",
    "unlicense*",
    "notice*",
    "copyright*",
    "legal*",
    "patents*",
)
DEFAULT_COPYRIGHT_SCOPE_PATTERNS: Final[tuple[str, ...]] = ("copyright*", "notice*", "authors*")


@dataclass(frozen=True, slots=True)
class ScopePatternConfig:
    license_patterns: tuple[str, ...] = DEFAULT_LICENSE_SCOPE_PATTERNS
    copyright_patterns: tuple[str, ...] = DEFAULT_COPYRIGHT_SCOPE_PATTERNS
    lowercase: bool = True


@dataclass(frozen=True, slots=True)
class DeduplicationConfig:
    keep_empty_scopes: bool = True
    create_unified_copyrights: bool = False
    preserve_file_scopes: bool = False
    compare_only_distinct: bool = True
    process_packages_with_issues: bool = False


@dataclass(frozen=True, slots=True)
class CurationConfig:
    file_store: Path | None = None


@dataclass(frozen=True, slots=True)
class ResolutionConfig:
    any_subset: bool = False
    generate_template: bool = False
    declared_source: str | None = None


@dataclass(frozen=True, slots=True)
class MetadataConfig:
    ignore_from_checks: bool = False


@dataclass(frozen=True, slots=True)
class MergeConfig:
    policy: str = DEFAULT_MERGE_POLICY
    cid: str = DEFAULT_MERGE_CID
    archive_name: str = DEFAULT_MERGE_ARCHIVE


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    issue_level: int = DEFAULT_ISSUE_LEVEL
    scopes: ScopePatternConfig = field(default_factory=ScopePatternConfig)
    deduplication: DeduplicationConfig = field(default_factory=DeduplicationConfig)
    curation: CurationConfig = field(default_factory=CurationConfig)
    resolution: ResolutionConfig = field(default_factory=ResolutionConfig)
    metadata: MetadataConfig = field(default_factory=MetadataConfig)
    merge: MergeConfig = field(default_factory=MergeConfig)


def validate_issue_level(level: int) -> int:
    if not MIN_ISSUE_LEVEL <= level <= MAX_ISSUE_LEVEL:
        raise ConfigurationError(
            f"Issue level must be between {MIN_ISSUE_LEVEL} and {MAX_ISSUE_LEVEL}, got {level}"
        )
    return level


def validate_merge_policy(policy: str) -> str:
    normalized = policy.strip().lower()
    if normalized not in MERGE_POLICIES:
        allowed = ", ".join(MERGE_POLICIES)
        raise ConfigurationError(f"Unknown merge policy {policy!r} (expected one of: {allowed})")
    return normalized


def get_pipeline_config() -> PipelineConfig:
    """Build the pipeline configuration from ``OSCCPIPE_*`` environment variables."""

    file_store = os.getenv("OSCCPIPE_FILE_STORE")
    declared_source = os.getenv("OSCCPIPE_DECLARED_SOURCE")

    return PipelineConfig(
        issue_level=validate_issue_level(env_int("OSCCPIPE_ISSUE_LEVEL", DEFAULT_ISSUE_LEVEL)),
        scopes=ScopePatternConfig(
            license_patterns=env_list(
                "OSCCPIPE_LICENSE_SCOPE_PATTERNS", DEFAULT_LICENSE_SCOPE_PATTERNS
            ),
            copyright_patterns=env_list(
                "OSCCPIPE_COPYRIGHT_SCOPE_PATTERNS", DEFAULT_COPYRIGHT_SCOPE_PATTERNS
            ),
            lowercase=env_flag("OSCCPIPE_LOWERCASE_SCOPE_PATTERNS", True),
        ),
        deduplication=DeduplicationConfig(
            keep_empty_scopes=env_flag("OSCCPIPE_KEEP_EMPTY_SCOPES", True),
            create_unified_copyrights=env_flag("OSCCPIPE_UNIFIED_COPYRIGHTS", False),
            preserve_file_scopes=env_flag("OSCCPIPE_PRESERVE_FILE_SCOPES", False),
            compare_only_distinct=env_flag("OSCCPIPE_COMPARE_ONLY_DISTINCT", True),
            process_packages_with_issues=env_flag("OSCCPIPE_PROCESS_PACKAGES_WITH_ISSUES", False),
        ),
        curation=CurationConfig(file_store=Path(file_store) if file_store else None),
        resolution=ResolutionConfig(
            any_subset=env_flag("OSCCPIPE_RESOLVER_ANY_SUBSET", False),
            generate_template=env_flag("OSCCPIPE_RESOLVER_TEMPLATE", False),
            declared_source=declared_source or None,
        ),
        metadata=MetadataConfig(
            ignore_from_checks=env_flag("OSCCPIPE_IGNORE_FROM_CHECKS", False),
        ),
        merge=MergeConfig(
            policy=validate_merge_policy(os.getenv("OSCCPIPE_MERGE_POLICY") or DEFAULT_MERGE_POLICY),
            cid=os.getenv("OSCCPIPE_MERGE_CID") or DEFAULT_MERGE_CID,
            archive_name=os.getenv("OSCCPIPE_MERGE_ARCHIVE") or DEFAULT_MERGE_ARCHIVE,
        ),
    )

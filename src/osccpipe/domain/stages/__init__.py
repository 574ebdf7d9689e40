"""Record transformation stages and the manager that runs them."""

from __future__ import annotations

from .base import Stage, StageContext
from .curation import CurationPayload, CurationStage, curation_validator
from .deduplication import DeduplicationOptions, DeduplicationStage
from .manager import StageManager, StageOutcome, StageResult
from .merge import CollisionPolicy, MergeInput, MergeOptions, merge_records
from .metadata import (
    MetadataStage,
    Transition,
    validate_distribution_rule,
    validate_package_type_rule,
)
from .resolution import (
    DeclaredLicenses,
    ResolutionStage,
    ResolverPayload,
    find_conflicting_resolver_rules,
    resolver_template,
    validate_resolver_rule,
)
from .scope_builder import ScopePatterns, regenerate_scopes
from .selection import SelectionStage, SelectorPayload, validate_selector_rule

__all__ = [
    "CollisionPolicy",
    "CurationPayload",
    "CurationStage",
    "DeclaredLicenses",
    "DeduplicationOptions",
    "DeduplicationStage",
    "MergeInput",
    "MergeOptions",
    "MetadataStage",
    "ResolutionStage",
    "ResolverPayload",
    "ScopePatterns",
    "SelectionStage",
    "SelectorPayload",
    "Stage",
    "StageContext",
    "StageManager",
    "StageOutcome",
    "StageResult",
    "Transition",
    "curation_validator",
    "find_conflicting_resolver_rules",
    "merge_records",
    "regenerate_scopes",
    "resolver_template",
    "validate_distribution_rule",
    "validate_package_type_rule",
    "validate_resolver_rule",
    "validate_selector_rule",
]

"""Application configuration helpers."""

from __future__ import annotations

from osccpipe.common.logging import configure_logging

from .env import env_flag, env_float, env_int, env_list
from .errors import ConfigurationError
from .http import HttpSourceConfig, RetryPolicy, get_http_source_config
from .pipeline import (
    MERGE_POLICIES,
    CurationConfig,
    DeduplicationConfig,
    MergeConfig,
    MetadataConfig,
    PipelineConfig,
    ResolutionConfig,
    ScopePatternConfig,
    get_pipeline_config,
    validate_issue_level,
    validate_merge_policy,
)

__all__ = [
    "MERGE_POLICIES",
    "ConfigurationError",
    "CurationConfig",
    "DeduplicationConfig",
    "HttpSourceConfig",
    "MergeConfig",
    "MetadataConfig",
    "PipelineConfig",
    "ResolutionConfig",
    "RetryPolicy",
    "ScopePatternConfig",
    "configure_logging",
    "env_flag",
    "env_float",
    "env_int",
    "env_list",
    "get_http_source_config",
    "get_pipeline_config",
    "validate_issue_level",
    "validate_merge_policy",
]

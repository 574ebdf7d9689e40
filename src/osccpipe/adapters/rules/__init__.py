"""YAML rule file adapter."""

from __future__ import annotations

from .loader import (
    TEMPLATE_FILE_NAME,
    load_curation_rules,
    load_metadata_rules,
    load_resolver_rules,
    load_selector_rules,
    write_resolver_template,
)

__all__ = [
    "TEMPLATE_FILE_NAME",
    "load_curation_rules",
    "load_metadata_rules",
    "load_resolver_rules",
    "load_selector_rules",
    "write_resolver_template",
]

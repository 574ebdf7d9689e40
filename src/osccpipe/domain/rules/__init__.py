"""Declarative rules and the catalog that matches them to packages."""

from __future__ import annotations

from .base import Rule, RuleKind, identifier_matches
from .catalog import RuleCatalog

__all__ = ["Rule", "RuleCatalog", "RuleKind", "identifier_matches"]

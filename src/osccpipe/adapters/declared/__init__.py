"""Declared-license source adapter."""

from __future__ import annotations

from .client import DeclaredLicenseClient, parse_declared

__all__ = ["DeclaredLicenseClient", "parse_declared"]

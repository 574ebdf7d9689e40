"""Rule envelope shared by every stage: identifier, origin and a stage payload."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from osccpipe.domain import versions

if TYPE_CHECKING:
    from osccpipe.domain.model import Identifier


class RuleKind(StrEnum):
    CURATION = "curation"
    RESOLVER = "resolver"
    SELECTOR = "selector"
    DISTRIBUTION = "distribution"
    PACKAGE_TYPE = "package-type"


@dataclass(frozen=True, slots=True, kw_only=True)
class Rule[TPayload]:
    """A loaded rule; ``origin`` names the file it came from."""

    kind: RuleKind
    identifier: Identifier
    origin: str
    payload: TPayload

    def matches(self, package: Identifier) -> bool:
        return identifier_matches(self.identifier, package)

    def describe(self) -> str:
        return f"{self.origin} [{self.identifier}]"


def identifier_matches(rule: Identifier, package: Identifier) -> bool:
    """Type compares case-insensitively, namespace and name exactly.

    The version matches when either side is blank, both are equal, or the rule
    version is an Ivy range the package version satisfies.
    """

    if rule.type.casefold() != package.type.casefold():
        return False
    if rule.namespace != package.namespace or rule.name != package.name:
        return False
    if not rule.version.strip() or not package.version.strip():
        return True
    if rule.version == package.version:
        return True
    return versions.is_range(rule.version) and versions.matches(rule.version, package.version)

"""Selection stage: pick one branch of a remaining ``OR`` license choice."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from osccpipe.domain.errors import RuleValidationError
from osccpipe.domain.licenses import CompoundOrLicense, contains_and, contains_or
from osccpipe.domain.model import FOUND_IN_FILE_SCOPE_CONFIGURED, Phase

from .scope_builder import regenerate_scopes

if TYPE_CHECKING:
    from osccpipe.domain.model import Package, Project
    from osccpipe.domain.rules import Rule, RuleCatalog

    from .base import StageContext
    from .scope_builder import ScopePatterns

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class SelectorChoice:
    specified: str
    selected: str

    @property
    def compound(self) -> CompoundOrLicense:
        return CompoundOrLicense.parse(self.specified)

    def applies_to(self, license_id: str | None) -> bool:
        return license_id is not None and CompoundOrLicense.parse(license_id) == self.compound


@dataclass(frozen=True, slots=True, kw_only=True)
class SelectorPayload:
    choices: tuple[SelectorChoice, ...]


type SelectorRule = Rule[SelectorPayload]


def validate_selector_rule(rule: SelectorRule) -> None:
    if not rule.payload.choices:
        raise RuleValidationError("a selector rule needs at least one choice")
    for choice in rule.payload.choices:
        if not contains_or(choice.specified):
            raise RuleValidationError(f"specified {choice.specified!r} must contain the operator 'OR'")
        if contains_and(choice.specified):
            raise RuleValidationError(f"specified {choice.specified!r} must not contain the operator 'AND'")
        if not choice.compound.is_compound:
            raise RuleValidationError(f"specified {choice.specified!r} is not a license choice")
        if choice.selected not in choice.compound:
            raise RuleValidationError(
                f"selected {choice.selected!r} is not one of the licenses in {choice.specified!r}"
            )


@dataclass(slots=True)
class SelectionStage:
    catalog: RuleCatalog[SelectorPayload]
    patterns: ScopePatterns
    name: str = "selection"
    phase: Phase = Phase.SELECTION
    author: str = "OSCake-Selector"
    suffix: str = "selected"
    config_key: str = "selector"

    def settings(self) -> dict[str, str]:
        return self.patterns.settings()

    def run(self, project: Project, *, context: StageContext) -> None:
        for package in project.packages:
            rule = self.catalog.match(package.identifier)
            if rule is not None and self._select(package, rule, context):
                context.changed_packages += 1
            _report_unselected(package, context)

    def _select(self, package: Package, rule: SelectorRule, context: StageContext) -> bool:
        if not package.file_licensings and not package.default_licenses:
            return False

        changed = False
        for choice in rule.payload.choices:
            for file_licensing in package.file_licensings:
                for item in file_licensing.licenses:
                    if choice.applies_to(item.license):
                        item.original_licenses = item.license
                        item.license = choice.selected
                        changed = True

        if not changed and package.file_licensings:
            return False

        if changed:
            removed = package.issues.clear_blocking()
            if removed:
                context.issues.warning(
                    "The original issues (ERRORS/WARNINGS) were removed due to Selector actions: "
                    + ", ".join(removed),
                    package=package.identifier,
                )
        regenerate_scopes(package, self.patterns, sink=context.issues)

        for fact in package.default_licenses:
            if fact.path != FOUND_IN_FILE_SCOPE_CONFIGURED:
                continue
            for choice in rule.payload.choices:
                if choice.applies_to(fact.license):
                    fact.original_licenses = fact.license
                    fact.license = choice.selected
                    changed = True
                    break
        return changed


def _report_unselected(package: Package, context: StageContext) -> None:
    for file_licensing in package.file_licensings:
        if any(CompoundOrLicense.parse(value).is_compound for value in file_licensing.license_values()):
            context.issues.info(
                f"There are still unselected compound licenses in file {file_licensing.scope}",
                package=package.identifier,
            )

"""Metadata stage: reclassify distribution and package type."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from osccpipe.domain.errors import RuleValidationError
from osccpipe.domain.model import DistributionType, Phase

from .base import flag

if TYPE_CHECKING:
    from osccpipe.domain.model import Package, Project
    from osccpipe.domain.rules import Rule, RuleCatalog

    from .base import StageContext


@dataclass(frozen=True, slots=True, kw_only=True)
class Transition:
    """Change a classification from ``source`` to ``target``."""

    source: str
    target: str


type MetadataRule = Rule[Transition]


def validate_distribution_rule(rule: MetadataRule) -> None:
    allowed = {member.value for member in DistributionType}
    for value in (rule.payload.source, rule.payload.target):
        if value not in allowed:
            raise RuleValidationError(
                f"distribution {value!r} is not one of {', '.join(sorted(allowed))}"
            )
    _validate_transition(rule.payload)


def validate_package_type_rule(rule: MetadataRule) -> None:
    if not rule.payload.source.strip() or not rule.payload.target.strip():
        raise RuleValidationError("package type 'from' and 'to' must not be empty")
    _validate_transition(rule.payload)


def _validate_transition(transition: Transition) -> None:
    if transition.source == transition.target:
        raise RuleValidationError('"from" and "to" are equal')


@dataclass(slots=True)
class MetadataStage:
    distributions: RuleCatalog[Transition]
    package_types: RuleCatalog[Transition]
    ignore_from_checks: bool = False
    name: str = "metadata"
    phase: Phase = Phase.METADATA
    author: str = "OSCake-MetaDataManager"
    suffix: str = "metadata"
    config_key: str = "metadatamanager"

    def settings(self) -> dict[str, str]:
        return {"ignoreFromChecks": flag(self.ignore_from_checks)}

    def run(self, project: Project, *, context: StageContext) -> None:
        for package in project.packages:
            changed = False
            rule = self.distributions.match(package.identifier)
            if rule is not None:
                changed |= self._change_distribution(package, rule, context)
            rule = self.package_types.match(package.identifier)
            if rule is not None:
                changed |= self._change_package_type(package, rule, context)
            if changed:
                context.changed_packages += 1

    def _change_distribution(
        self, package: Package, rule: MetadataRule, context: StageContext
    ) -> bool:
        # packages without a distribution count as distributed
        current = package.distribution or DistributionType.DISTRIBUTED
        if current != rule.payload.source and not self.ignore_from_checks:
            context.issues.warning(
                f'The kind of distribution "{current}" is different to the Distributor "from" '
                f'definition found in file: "{rule.origin}"',
                package=package.identifier,
            )
            return False
        package.distribution = DistributionType(rule.payload.target)
        return True

    def _change_package_type(
        self, package: Package, rule: MetadataRule, context: StageContext
    ) -> bool:
        current = (package.package_type or "").upper()
        if current != rule.payload.source and not self.ignore_from_checks:
            context.issues.warning(
                f'The kind of packageType "{package.package_type}" is different to the PackageType '
                f'"from" definition found in file: "{rule.origin}"',
                package=package.identifier,
            )
            return False
        package.package_type = rule.payload.target
        return True

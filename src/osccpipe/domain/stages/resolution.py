"""Resolution stage: turn sets of co-existing file licenses into one OR expression."""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from osccpipe.domain.errors import (
    AmbiguousRuleError,
    RuleValidationError,
    UnsupportedExpressionWarning,
)
from osccpipe.domain.licenses import contains_and, contains_or
from osccpipe.domain.model import (
    FOUND_IN_FILE_SCOPE_CONFIGURED,
    FOUND_IN_FILE_SCOPE_DECLARED,
    SENTINEL_PATHS,
    FileLicense,
    LicenseFact,
    Phase,
    Severity,
)
from osccpipe.domain.rules import Rule, RuleKind
from osccpipe.domain.scopes import fits_in_scopes

from .base import flag
from .scope_builder import regenerate_scopes, report_multiple_licenses

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence

    from osccpipe.domain.model import FileLicensing, Identifier, Package, Project
    from osccpipe.domain.rules import RuleCatalog

    from .base import StageContext
    from .scope_builder import ScopePatterns

log = logging.getLogger(__name__)

GENERATED_ORIGIN: Final[str] = "<generated from declared licenses>"
EVERYWHERE: Final[tuple[str, ...]] = ("",)


@dataclass(frozen=True, slots=True, kw_only=True)
class ResolverBlock:
    licenses: tuple[str | None, ...]
    result: str
    scopes: tuple[str, ...] = EVERYWHERE

    @property
    def effective_scopes(self) -> tuple[str, ...]:
        return self.scopes or EVERYWHERE

    @property
    def license_key(self) -> frozenset[str]:
        return frozenset(item.lower() for item in self.licenses if item is not None)


@dataclass(frozen=True, slots=True, kw_only=True)
class ResolverPayload:
    blocks: tuple[ResolverBlock, ...]


type ResolverRule = Rule[ResolverPayload]


@dataclass(frozen=True, slots=True)
class DeclaredLicenses:
    """Declared licenses of one package as reported by the package manager."""

    declared: tuple[str, ...]
    processed: str | None
    mapped: Mapping[str, str] = field(default_factory=dict)

    @property
    def mapped_licenses(self) -> list[str]:
        return sorted({self.mapped.get(item, item) for item in self.declared})


def validate_resolver_rule(rule: ResolverRule) -> None:
    if not rule.payload.blocks:
        raise RuleValidationError("a resolver rule needs at least one block")
    seen: set[tuple[frozenset[str], str]] = set()
    for block in rule.payload.blocks:
        if not block.licenses:
            raise RuleValidationError("licenses must not be empty")
        if any(item is None for item in block.licenses):
            raise RuleValidationError("licenses must not contain null entries")
        if not contains_or(block.result):
            raise RuleValidationError(f"result {block.result!r} must contain the operator 'OR'")
        if contains_and(block.result):
            raise RuleValidationError(f"result {block.result!r} must not contain the operator 'AND'")
        for scope in block.effective_scopes:
            key = (block.license_key, scope)
            if key in seen:
                raise RuleValidationError(f"scope {scope!r} is declared twice for the same licenses")
            seen.add(key)


def find_conflicting_resolver_rules(
    rules: Sequence[ResolverRule],
) -> Iterable[tuple[ResolverRule, str]]:
    """Rules for the identical package may not repeat a scope for the same license set."""

    claimed: dict[tuple[Identifier, frozenset[str], str], ResolverRule] = {}
    for rule in rules:
        for block in rule.payload.blocks:
            for scope in block.effective_scopes:
                key = (rule.identifier, block.license_key, scope)
                other = claimed.get(key)
                if other is None:
                    claimed[key] = rule
                    continue
                reason = f"scope {scope!r} with the same licenses is also declared in {other.origin}"
                yield other, reason
                yield rule, reason


@dataclass(slots=True)
class ResolutionStage:
    catalog: RuleCatalog[ResolverPayload]
    patterns: ScopePatterns
    declared: Mapping[Identifier, DeclaredLicenses] = field(default_factory=dict)
    any_subset: bool = False
    template_writer: Callable[[list[ResolverRule]], object] | None = None
    name: str = "resolution"
    phase: Phase = Phase.RESOLUTION
    author: str = "OSCake-Resolver"
    suffix: str = "resolved"
    config_key: str = "resolver"

    def settings(self) -> dict[str, str]:
        return {
            **self.patterns.settings(),
            "anySubset": flag(self.any_subset),
            "generateTemplate": flag(self.template_writer is not None),
            "declaredPackages": str(len(self.declared)),
        }

    def run(self, project: Project, *, context: StageContext) -> None:
        for package in project.packages:
            if package.reuse_compliant:
                continue
            try:
                rule = self.catalog.lookup(package.identifier)
            except AmbiguousRuleError as exc:
                context.issues.error(str(exc), package=package.identifier)
                continue
            if rule is None:
                rule = self._generate_rule(package, context)
                if rule is None:
                    continue
                self.catalog.add(rule)
            if self._resolve(package, rule, project, context):
                context.changed_packages += 1

        if self.template_writer is not None:
            self.template_writer(resolver_template(project))

    def _resolve(
        self,
        package: Package,
        rule: ResolverRule,
        project: Project,
        context: StageContext,
    ) -> bool:
        candidates: list[str | None] = []
        changed = False
        for block in rule.payload.blocks:
            wanted = block.license_key
            hits = 0
            for file_licensing in package.file_licensings:
                if not self._covers(file_licensing, wanted):
                    continue
                if not fits_in_scopes(file_licensing.scope, block.effective_scopes):
                    continue
                candidates.extend(item.license_text_in_archive for item in file_licensing.licenses)
                file_licensing.licenses = [FileLicense(license=block.result)]
                hits += 1
            if hits:
                changed = True
            elif rule.origin != GENERATED_ORIGIN:
                context.issues.warning(
                    f"Resolver block for {sorted(wanted)} in {rule.origin} did not match any file",
                    package=package.identifier,
                )

        if not changed:
            return False

        package.issues.clear_blocking()
        regenerate_scopes(package, self.patterns)
        if all(fact.path in SENTINEL_PATHS for fact in package.default_licenses):
            package.default_licenses = _configured_defaults(package.default_licenses, rule)
        report_multiple_licenses(package, context.issues)

        context.released_blobs.extend(context.store.release(project, candidates))
        return True

    def _covers(self, file_licensing: FileLicensing, wanted: frozenset[str]) -> bool:
        present = {item.license.lower() for item in file_licensing.licenses if item.license is not None}
        if not present:
            return False
        if self.any_subset:
            return present <= wanted
        return present == wanted

    def _generate_rule(self, package: Package, context: StageContext) -> ResolverRule | None:
        declared = self.declared.get(package.identifier)
        if declared is None or not declared.processed:
            return None
        mapped = declared.mapped_licenses
        has_declared_marker = any(
            fact.path == FOUND_IN_FILE_SCOPE_DECLARED for fact in package.default_licenses
        )
        if not has_declared_marker:
            default_values = {fact.license for fact in package.default_licenses if fact.license}
            if len(package.default_licenses) < 2 or default_values != set(mapped):
                return None

        if contains_and(declared.processed) or any(contains_and(item) for item in mapped):
            message = (
                f"Declared license expression {declared.processed!r} contains the operator "
                "'AND' and cannot be resolved automatically"
            )
            context.issues.report(Severity.WARNING, message, package=package.identifier)
            warnings.warn(
                f"{package.identifier}: {message}", UnsupportedExpressionWarning, stacklevel=2
            )
            return None
        if not contains_or(declared.processed):
            return None

        log.debug("Generated resolver rule for %s: %s", package.identifier, declared.processed)
        return Rule(
            kind=RuleKind.RESOLVER,
            identifier=package.identifier,
            origin=GENERATED_ORIGIN,
            payload=ResolverPayload(
                blocks=(ResolverBlock(licenses=tuple(mapped), result=declared.processed),)
            ),
        )


def _configured_defaults(defaults: list[LicenseFact], rule: ResolverRule) -> list[LicenseFact]:
    """Relabel declared defaults as configured once the files have been resolved.

    When the declared licenses are exactly the licenses of a package-wide resolver
    block they collapse into a single configured fact carrying its result.
    """

    declared = [fact for fact in defaults if fact.path == FOUND_IN_FILE_SCOPE_DECLARED]
    if not declared:
        return defaults
    others = [fact for fact in defaults if fact.path != FOUND_IN_FILE_SCOPE_DECLARED]
    declared_key = frozenset(fact.license.lower() for fact in declared if fact.license)
    for block in rule.payload.blocks:
        if block.license_key == declared_key and "" in block.effective_scopes:
            return [*others, LicenseFact(license=block.result, path=FOUND_IN_FILE_SCOPE_CONFIGURED)]
    for fact in declared:
        fact.path = FOUND_IN_FILE_SCOPE_CONFIGURED
    return [*others, *declared]


def resolver_template(project: Project) -> list[ResolverRule]:
    """One rule per package listing every file scope that still carries several licenses."""

    rules: list[ResolverRule] = []
    for package in project.packages:
        grouped: dict[tuple[str | None, ...], list[str]] = {}
        for file_licensing in package.file_licensings:
            distinct = tuple(dict.fromkeys(file_licensing.license_values()))
            if len(distinct) > 1:
                grouped.setdefault(distinct, []).append(file_licensing.scope)
        if not grouped:
            continue
        blocks = tuple(
            ResolverBlock(
                licenses=licenses,
                result=" OR ".join(str(item) for item in licenses),
                scopes=tuple(scopes),
            )
            for licenses, scopes in grouped.items()
        )
        rules.append(
            Rule(
                kind=RuleKind.RESOLVER,
                identifier=package.identifier,
                origin="template.yml.tmp",
                payload=ResolverPayload(blocks=blocks),
            )
        )
    return rules

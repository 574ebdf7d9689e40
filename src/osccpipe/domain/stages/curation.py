"""Curation stage: apply hand-written corrections to license and copyright facts."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import StrEnum
from fnmatch import fnmatchcase
from typing import TYPE_CHECKING, Final

from osccpipe.domain import versions
from osccpipe.domain.errors import RuleValidationError
from osccpipe.domain.model import (
    FOUND_IN_FILE_SCOPE_DECLARED,
    CopyrightFact,
    FileCopyright,
    FileLicense,
    LicenseFact,
    Package,
    Phase,
)
from osccpipe.domain.scopes import strip_package_root

from .scope_builder import regenerate_scopes

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from pathlib import Path

    from osccpipe.domain.archive import BlobStore
    from osccpipe.domain.issues import IssueTracker
    from osccpipe.domain.model import FileLicensing, Identifier, Project
    from osccpipe.domain.rules import Rule, RuleCatalog

    from .base import StageContext
    from .scope_builder import ScopePatterns

log = logging.getLogger(__name__)

DEFAULT_LICENSING_SCOPE: Final[str] = "<DEFAULT_LICENSING>"
WILDCARD: Final[str] = "*"
_ISSUE_ID = re.compile(r"^(?:[EWI]\d\d|[WE]\*)$")


class PackageModifier(StrEnum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class ItemModifier(StrEnum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    DELETE_ALL = "delete-all"


# item modifiers allowed per package modifier, in application order
LICENSE_ORDER: Final[dict[str, tuple[str, ...]]] = {
    PackageModifier.UPDATE: (ItemModifier.DELETE, ItemModifier.INSERT, ItemModifier.UPDATE),
    PackageModifier.INSERT: (ItemModifier.INSERT,),
    PackageModifier.DELETE: (),
}
COPYRIGHT_ORDER: Final[dict[str, tuple[str, ...]]] = {
    PackageModifier.UPDATE: (ItemModifier.DELETE_ALL, ItemModifier.DELETE, ItemModifier.INSERT),
    PackageModifier.INSERT: (ItemModifier.INSERT,),
    PackageModifier.DELETE: (),
}


@dataclass(frozen=True, slots=True, kw_only=True)
class LicenseCuration:
    modifier: str
    license: str | None = None
    license_text_in_archive: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class CopyrightCuration:
    modifier: str
    copyright: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ScopeCuration:
    file_scope: str
    licenses: tuple[LicenseCuration, ...] = ()
    copyrights: tuple[CopyrightCuration, ...] = ()

    @property
    def targets_default(self) -> bool:
        return self.file_scope == DEFAULT_LICENSING_SCOPE


@dataclass(frozen=True, slots=True, kw_only=True)
class CurationPayload:
    package_modifier: str
    curations: tuple[ScopeCuration, ...] = ()
    resolved_issues: tuple[str, ...] = ()
    repository: str = ""
    source_root: str = ""
    comment: str | None = None


type CurationRule = Rule[CurationPayload]


def curation_validator(file_store: Path | None) -> Callable[[CurationRule], None]:
    """Return the semantic check for curation rules against ``file_store``."""

    def validate(rule: CurationRule) -> None:
        payload = rule.payload
        if payload.package_modifier not in LICENSE_ORDER:
            raise RuleValidationError(f"package_modifier {payload.package_modifier!r} is not supported")
        if payload.package_modifier == PackageModifier.DELETE and payload.curations:
            raise RuleValidationError("package_modifier 'delete' does not allow curations")
        if payload.package_modifier == PackageModifier.INSERT and (
            not rule.identifier.version.strip() or versions.is_range(rule.identifier.version)
        ):
            raise RuleValidationError("package_modifier 'insert' needs an exact version")
        if payload.resolved_issues:
            if payload.package_modifier != PackageModifier.UPDATE:
                raise RuleValidationError("resolved_issues are only allowed for 'update'")
            invalid = [issue for issue in payload.resolved_issues if not _ISSUE_ID.match(issue)]
            if invalid:
                raise RuleValidationError(f"invalid issue id(s) in resolved_issues: {', '.join(invalid)}")

        license_modifiers = LICENSE_ORDER[payload.package_modifier]
        copyright_modifiers = COPYRIGHT_ORDER[payload.package_modifier]
        for curation in payload.curations:
            if not curation.file_scope.strip():
                raise RuleValidationError("file_scope must not be empty")
            for item in curation.licenses:
                _validate_license_item(item, license_modifiers, file_store)
            for item in curation.copyrights:
                _validate_copyright_item(item, copyright_modifiers)

    return validate


def _validate_license_item(
    item: LicenseCuration, allowed: tuple[str, ...], file_store: Path | None
) -> None:
    if item.modifier not in allowed:
        raise RuleValidationError(f"license modifier {item.modifier!r} is not allowed here")
    if item.modifier == ItemModifier.INSERT and (item.license is None or item.license == WILDCARD):
        raise RuleValidationError("license 'insert' needs a concrete license")
    if item.modifier in (ItemModifier.DELETE, ItemModifier.UPDATE) and item.license is None:
        raise RuleValidationError(f"license {item.modifier!r} needs a license (or '*')")
    text = item.license_text_in_archive
    if text == WILDCARD:
        if item.modifier != ItemModifier.DELETE:
            raise RuleValidationError(f"license {item.modifier!r} cannot use '*' as license text")
        return
    if text is None:
        return
    if file_store is None:
        raise RuleValidationError(f"license text {text!r} given but no file store is configured")
    if not (file_store / text).is_file():
        raise RuleValidationError(f"license text {text!r} not found in file store {file_store}")


def _validate_copyright_item(item: CopyrightCuration, allowed: tuple[str, ...]) -> None:
    if item.modifier not in allowed:
        raise RuleValidationError(f"copyright modifier {item.modifier!r} is not allowed here")
    if item.modifier == ItemModifier.DELETE_ALL:
        if item.copyright is not None:
            raise RuleValidationError("copyright 'delete-all' must not name a copyright")
        return
    if item.copyright is None or not item.copyright.strip():
        raise RuleValidationError(f"copyright {item.modifier!r} needs a non-empty copyright")
    if item.modifier == ItemModifier.DELETE and "**" in item.copyright:
        raise RuleValidationError("copyright 'delete' must not contain '**'")


def copyright_matches(pattern: str, value: str) -> bool:
    """Wildcard match: ``*`` any run, ``?`` one character, ``\\*``/``\\?`` literal."""

    return _compile_wildcard(pattern).fullmatch(value) is not None


def _compile_wildcard(pattern: str) -> re.Pattern[str]:
    parts: list[str] = []
    index = 0
    while index < len(pattern):
        char = pattern[index]
        if char == "\\" and index + 1 < len(pattern) and pattern[index + 1] in "*?":
            parts.append(re.escape(pattern[index + 1]))
            index += 2
            continue
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
        index += 1
    return re.compile("".join(parts), re.DOTALL)


def unescape_copyright(value: str) -> str:
    return value.replace("\\*", "*").replace("\\?", "?")


def flat_archive_name(identifier: Identifier, path: str, extension: str | None = None) -> str:
    """Flat archive file name: ``Type%namespace%name%version%dir%file[.ext]``."""

    flat_path = path.replace("/", "%").replace("\\", "%")
    flat = f"{identifier.to_path('%')}%{flat_path}"
    return f"{flat}.{extension}" if extension else flat


@dataclass(slots=True)
class CurationStage:
    catalog: RuleCatalog[CurationPayload]
    patterns: ScopePatterns
    file_store: Path | None = None
    name: str = "curation"
    phase: Phase = Phase.CURATION
    author: str = "OSCake-Curator"
    suffix: str = "curated"
    config_key: str = "curator"

    def settings(self) -> dict[str, str]:
        return {
            **self.patterns.settings(),
            "fileStore": str(self.file_store) if self.file_store is not None else "",
        }

    def run(self, project: Project, *, context: StageContext) -> None:
        self._insert_packages(project, context)

        survivors: list[Package] = []
        deleted: list[Package] = []
        for package in project.packages:
            rule = self.catalog.match(package.identifier)
            if rule is None or rule.payload.package_modifier == PackageModifier.INSERT:
                survivors.append(package)
                continue
            if rule.payload.package_modifier == PackageModifier.DELETE:
                deleted.append(package)
                context.issues.info(
                    f"Package deleted by curation ({rule.origin})", package=package.identifier
                )
                continue
            _PackageCurator(project, package, rule, self, context).apply()
            context.changed_packages += 1
            survivors.append(package)

        project.packages = survivors
        if deleted:
            candidates = [name for package in deleted for name in package.archive_references()]
            context.released_blobs.extend(context.store.release(project, candidates))
            context.changed_packages += len(deleted)

    def _insert_packages(self, project: Project, context: StageContext) -> None:
        for rule in self.catalog.rules:
            if rule.payload.package_modifier != PackageModifier.INSERT:
                continue
            if any(rule.matches(package.identifier) for package in project.packages):
                context.issues.warning(
                    f"Package already exists, insert ignored ({rule.origin})",
                    package=rule.identifier,
                )
                continue
            package = Package(
                identifier=rule.identifier,
                repository=rule.payload.repository,
                source_root=rule.payload.source_root,
            )
            project.packages.append(package)
            _PackageCurator(project, package, rule, self, context).apply()
            context.changed_packages += 1
            log.info("Inserted package %s from %s", rule.identifier, rule.origin)


@dataclass(slots=True)
class _PackageCurator:
    project: Project
    package: Package
    rule: CurationRule
    stage: CurationStage
    context: StageContext
    candidates: list[str | None] = field(default_factory=list["str | None"])
    touched: set[str] = field(default_factory=set[str])

    @property
    def issues(self) -> IssueTracker:
        return self.context.issues

    @property
    def store(self) -> BlobStore:
        return self.context.store

    def apply(self) -> None:
        payload = self.rule.payload
        license_order = LICENSE_ORDER[payload.package_modifier]
        copyright_order = COPYRIGHT_ORDER[payload.package_modifier]

        self._resolve_issues(payload.resolved_issues)

        file_curations = [item for item in payload.curations if not item.targets_default]
        default_curations = [item for item in payload.curations if item.targets_default]

        for curation in file_curations:
            scope = strip_package_root(self.package, curation.file_scope)
            for item in _ordered(curation.licenses, license_order):
                self._curate_file_license(scope, item)
            for item in _ordered(curation.copyrights, copyright_order):
                self._curate_file_copyright(scope, item)
        if file_curations:
            self.package.file_licensings = [
                file_licensing
                for file_licensing in self.package.file_licensings
                if file_licensing.scope not in self.touched
                or not (file_licensing.is_empty() or self._only_content_left(file_licensing))
            ]
            regenerate_scopes(
                self.package, self.stage.patterns, sink=self.issues, keep_sentinels=True
            )

        for curation in default_curations:
            for item in _ordered(curation.licenses, license_order):
                self._curate_default_license(item)
            for item in _ordered(curation.copyrights, copyright_order):
                self._curate_default_copyright(item)

        self.context.released_blobs.extend(self.store.release(self.project, self.candidates))

    def _only_content_left(self, file_licensing: FileLicensing) -> bool:
        if file_licensing.licenses or file_licensing.copyrights:
            return False
        if file_licensing.content_in_archive is not None:
            self.candidates.append(file_licensing.content_in_archive)
        return True

    def _resolve_issues(self, resolved: Iterable[str]) -> None:
        wanted = tuple(resolved)
        if not wanted:
            return
        removed = self.package.issues.remove_matching(wanted)
        for fact in self.package.license_facts():
            removed.extend(fact.issues.remove_matching(wanted))
        if removed:
            self.issues.info(
                f"Resolved issue(s) removed: {', '.join(removed)}", package=self.package.identifier
            )
        missing = [issue for issue in wanted if "*" not in issue and issue not in removed]
        if missing:
            self.issues.warning(
                f"Issue(s) to resolve not found: {', '.join(missing)}", package=self.package.identifier
            )

    # file scope

    def _matching_files(self, scope_glob: str) -> list[FileLicensing]:
        return [
            file_licensing
            for file_licensing in self.package.file_licensings
            if fnmatchcase(file_licensing.scope, scope_glob)
        ]

    def _curate_file_license(self, scope: str, item: LicenseCuration) -> None:
        if item.modifier == ItemModifier.INSERT:
            target = self.package.ensure_file_licensing(scope)
            self.touched.add(scope)
            if any(existing.license == item.license for existing in target.licenses):
                self.issues.info(
                    f"License {item.license} already present in {scope}, insert skipped",
                    package=self.package.identifier,
                )
                return
            target.licenses.append(
                FileLicense(
                    license=item.license,
                    license_text_in_archive=self._copy_text(item.license_text_in_archive, scope, item.license),
                )
            )
            return

        hits = 0
        for file_licensing in self._matching_files(scope):
            self.touched.add(file_licensing.scope)
            if item.modifier == ItemModifier.DELETE:
                keep: list[FileLicense] = []
                for existing in file_licensing.licenses:
                    if _license_selected(item, existing.license, existing.license_text_in_archive):
                        self.candidates.append(existing.license_text_in_archive)
                        hits += 1
                    else:
                        keep.append(existing)
                file_licensing.licenses = keep
            else:
                for existing in file_licensing.licenses:
                    if item.license not in (WILDCARD, existing.license):
                        continue
                    hits += 1
                    self.candidates.append(existing.license_text_in_archive)
                    existing.license_text_in_archive = self._copy_text(
                        item.license_text_in_archive, file_licensing.scope, existing.license
                    )
        if not hits:
            self.issues.info(
                f"No license {item.license} found in {scope} to {item.modifier}",
                package=self.package.identifier,
            )

    def _curate_file_copyright(self, scope: str, item: CopyrightCuration) -> None:
        if item.modifier == ItemModifier.INSERT:
            value = unescape_copyright(item.copyright or "")
            target = self.package.ensure_file_licensing(scope)
            self.touched.add(scope)
            if any(existing.copyright == value for existing in target.copyrights):
                self.issues.info(
                    f"Copyright already present in {scope}, insert skipped",
                    package=self.package.identifier,
                )
                return
            target.copyrights.append(FileCopyright(copyright=value))
            return

        hits = 0
        for file_licensing in self._matching_files(scope):
            self.touched.add(file_licensing.scope)
            before = len(file_licensing.copyrights)
            if item.modifier == ItemModifier.DELETE_ALL:
                file_licensing.copyrights = []
            else:
                pattern = item.copyright or ""
                file_licensing.copyrights = [
                    existing
                    for existing in file_licensing.copyrights
                    if not copyright_matches(pattern, existing.copyright)
                ]
            hits += before - len(file_licensing.copyrights)
        if not hits:
            self.issues.info(
                f"No copyright found in {scope} to {item.modifier}", package=self.package.identifier
            )

    # default scope

    def _curate_default_license(self, item: LicenseCuration) -> None:
        facts = self.package.default_licenses
        if item.modifier == ItemModifier.INSERT:
            if any(existing.license == item.license for existing in facts):
                self.issues.info(
                    f"Default license {item.license} already present, insert skipped",
                    package=self.package.identifier,
                )
                return
            facts.append(
                LicenseFact(
                    license=item.license,
                    path=FOUND_IN_FILE_SCOPE_DECLARED,
                    license_text_in_archive=self._copy_text(
                        item.license_text_in_archive, "default", item.license
                    ),
                )
            )
            return

        if item.modifier == ItemModifier.DELETE:
            keep = []
            for existing in facts:
                if _license_selected(item, existing.license, existing.license_text_in_archive):
                    self.candidates.append(existing.license_text_in_archive)
                else:
                    keep.append(existing)
            hits = len(facts) - len(keep)
            self.package.default_licenses = keep
        else:
            hits = 0
            for existing in facts:
                if item.license not in (WILDCARD, existing.license):
                    continue
                hits += 1
                self.candidates.append(existing.license_text_in_archive)
                existing.license_text_in_archive = self._copy_text(
                    item.license_text_in_archive, "default", existing.license
                )
        if not hits:
            self.issues.info(
                f"No default license {item.license} found to {item.modifier}",
                package=self.package.identifier,
            )

    def _curate_default_copyright(self, item: CopyrightCuration) -> None:
        facts = self.package.default_copyrights
        if item.modifier == ItemModifier.INSERT:
            value = unescape_copyright(item.copyright or "")
            if any(existing.copyright == value for existing in facts):
                self.issues.info(
                    "Default copyright already present, insert skipped",
                    package=self.package.identifier,
                )
                return
            facts.append(CopyrightFact(copyright=value, path=FOUND_IN_FILE_SCOPE_DECLARED))
            return

        if item.modifier == ItemModifier.DELETE_ALL:
            keep: list[CopyrightFact] = []
        else:
            pattern = item.copyright or ""
            keep = [
                existing
                for existing in facts
                if existing.copyright is None or not copyright_matches(pattern, existing.copyright)
            ]
        if len(keep) == len(facts):
            self.issues.info(
                f"No default copyright found to {item.modifier}", package=self.package.identifier
            )
        self.package.default_copyrights = keep

    def _copy_text(self, source: str | None, scope: str, license_id: str | None) -> str | None:
        if source is None or source == WILDCARD:
            return None
        file_store = self.stage.file_store
        if file_store is None:
            return None
        name = flat_archive_name(self.package.identifier, scope, license_id or "unknown")
        return self.store.add(file_store / source, name)


def _license_selected(item: LicenseCuration, license_id: str | None, text: str | None) -> bool:
    if item.license not in (WILDCARD, license_id):
        return False
    return item.license_text_in_archive in (None, WILDCARD, text)


def _ordered[T: (LicenseCuration, CopyrightCuration)](items: Iterable[T], order: tuple[str, ...]) -> list[T]:
    rank = {modifier: position for position, modifier in enumerate(order)}
    return sorted(items, key=lambda item: rank.get(item.modifier, len(order)))

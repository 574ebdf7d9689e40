"""Deduplication stage: drop facts already implied by an enclosing scope."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from osccpipe.domain.model import NOASSERTION, Phase
from osccpipe.domain.scopes import best_matching_dir, dir_scope_path, parent_dir

from .base import flag

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from osccpipe.domain.model import DirLicensing, FileLicensing, Package, Project

    from .base import StageContext

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DeduplicationOptions:
    keep_empty_scopes: bool = True
    create_unified_copyrights: bool = False
    preserve_file_scopes: bool = False
    compare_only_distinct: bool = True
    process_packages_with_issues: bool = False


@dataclass(slots=True)
class DeduplicationStage:
    options: DeduplicationOptions = field(default_factory=DeduplicationOptions)
    name: str = "deduplication"
    phase: Phase = Phase.DEDUPLICATION
    author: str = "OSCake-Deduplicator"
    suffix: str = "deduplicated"
    config_key: str = "deduplicator"

    def settings(self) -> dict[str, str]:
        options = self.options
        return {
            "keepEmptyScopes": flag(options.keep_empty_scopes),
            "createUnifiedCopyrights": flag(options.create_unified_copyrights),
            "preserveFileScopes": flag(options.preserve_file_scopes),
            "compareOnlyDistinctLicensesCopyrights": flag(options.compare_only_distinct),
            "processPackagesWithIssues": flag(options.process_packages_with_issues),
        }

    def run(self, project: Project, *, context: StageContext) -> None:
        for package in project.packages:
            if package.reuse_compliant:
                log.debug("Skipping REUSE compliant package %s", package.identifier)
                continue
            if package.has_error_issues() and not self.options.process_packages_with_issues:
                context.issues.info(
                    "Package has unresolved errors and is not deduplicated",
                    package=package.identifier,
                )
                continue
            candidates = PackageDeduplicator(package, self.options).deduplicate()
            context.released_blobs.extend(context.store.release(project, candidates))
            context.changed_packages += 1


@dataclass(slots=True)
class PackageDeduplicator:
    """Collapses the scopes of one package; returns archive paths that may be orphaned."""

    package: Package
    options: DeduplicationOptions
    candidates: list[str | None] = field(default_factory=list["str | None"])

    def deduplicate(self) -> list[str | None]:
        self._file_licenses()
        self._file_copyrights()
        self._dir_dir_licenses()
        self._dir_dir_copyrights()
        self._dir_default_licenses()
        self._dir_default_copyrights()
        self._prune()

        if self.options.create_unified_copyrights:
            self._unify_copyrights()
            self._prune()
        return self.candidates

    def is_equal(self, first: Sequence[str], second: Sequence[str]) -> bool:
        """Order-independent comparison, optionally on distinct values only."""

        left = list(dict.fromkeys(first)) if self.options.compare_only_distinct else list(first)
        right = list(dict.fromkeys(second)) if self.options.compare_only_distinct else list(second)
        if len(left) != len(right):
            return False
        return sorted(left) == sorted(right)

    # file scope

    def _file_licenses(self) -> None:
        for file_licensing in self.package.file_licensings:
            if not file_licensing.licenses:
                continue
            if self._licenses_implied(file_licensing):
                self.candidates.extend(item.license_text_in_archive for item in file_licensing.licenses)
                file_licensing.licenses = []

    def _file_copyrights(self) -> None:
        for file_licensing in self.package.file_licensings:
            if file_licensing.copyrights and self._copyrights_implied(file_licensing):
                file_licensing.copyrights = []

    def _licenses_implied(self, file_licensing: FileLicensing) -> bool:
        preserve = self.options.preserve_file_scopes
        values = _values(item.license for item in file_licensing.licenses)
        dir_licensing = self._license_dir(dir_scope_path(self.package, file_licensing.scope))
        if dir_licensing is not None:
            if preserve and dir_licensing.scope == file_licensing.scope:
                return False
            if not preserve and any(fact.path == file_licensing.scope for fact in dir_licensing.licenses):
                return True
            parent_values = _values(fact.license for fact in dir_licensing.licenses)
            return self.is_equal(parent_values, values) and NOASSERTION not in values

        if any(fact.path == file_licensing.scope for fact in self.package.default_licenses):
            return not preserve
        default_values = _values(fact.license for fact in self.package.default_licenses)
        return self.is_equal(default_values, values) and NOASSERTION not in values

    def _copyrights_implied(self, file_licensing: FileLicensing) -> bool:
        preserve = self.options.preserve_file_scopes
        values = [item.copyright for item in file_licensing.copyrights]
        dir_licensing = self._copyright_dir(dir_scope_path(self.package, file_licensing.scope))
        if dir_licensing is not None:
            if preserve and dir_licensing.scope == file_licensing.scope:
                return False
            if not preserve and any(fact.path == file_licensing.scope for fact in dir_licensing.copyrights):
                return True
            return self.is_equal(_values(fact.copyright for fact in dir_licensing.copyrights), values)

        if any(fact.path == file_licensing.scope for fact in self.package.default_copyrights):
            return not preserve
        return self.is_equal(_values(fact.copyright for fact in self.package.default_copyrights), values)

    # directory scope

    def _dir_dir_licenses(self) -> None:
        for dir_licensing in self.package.dir_licensings:
            parent = self._license_ancestor(dir_licensing)
            if parent is None or not dir_licensing.licenses:
                continue
            values = _values(fact.license for fact in dir_licensing.licenses)
            parent_values = _values(fact.license for fact in parent.licenses)
            if self.is_equal(values, parent_values) and NOASSERTION not in values:
                self._clear_dir_licenses(dir_licensing)

    def _dir_dir_copyrights(self) -> None:
        for dir_licensing in self.package.dir_licensings:
            parent = self._copyright_ancestor(dir_licensing)
            if parent is None or not dir_licensing.copyrights:
                continue
            values = _values(fact.copyright for fact in dir_licensing.copyrights)
            if self.is_equal(values, _values(fact.copyright for fact in parent.copyrights)):
                dir_licensing.copyrights = []

    def _dir_default_licenses(self) -> None:
        default_values = _values(fact.license for fact in self.package.default_licenses)
        for dir_licensing in self.package.dir_licensings:
            if not dir_licensing.licenses or self._license_ancestor(dir_licensing) is not None:
                continue
            values = _values(fact.license for fact in dir_licensing.licenses)
            if self.is_equal(default_values, values) and NOASSERTION not in values:
                self._clear_dir_licenses(dir_licensing)

    def _dir_default_copyrights(self) -> None:
        default_values = _values(fact.copyright for fact in self.package.default_copyrights)
        for dir_licensing in self.package.dir_licensings:
            if not dir_licensing.copyrights or self._copyright_ancestor(dir_licensing) is not None:
                continue
            values = _values(fact.copyright for fact in dir_licensing.copyrights)
            if self.is_equal(default_values, values):
                dir_licensing.copyrights = []

    def _clear_dir_licenses(self, dir_licensing: DirLicensing) -> None:
        self.candidates.extend(fact.license_text_in_archive for fact in dir_licensing.licenses)
        dir_licensing.licenses = []

    # scope lookups skip directories whose fact list of the kind is already empty

    def _license_dir(self, path: str) -> DirLicensing | None:
        current = best_matching_dir(self.package, path)
        while current is not None and not current.licenses:
            current = parent_dir(self.package, current)
        return current

    def _copyright_dir(self, path: str) -> DirLicensing | None:
        current = best_matching_dir(self.package, path)
        while current is not None and not current.copyrights:
            current = parent_dir(self.package, current)
        return current

    def _license_ancestor(self, dir_licensing: DirLicensing) -> DirLicensing | None:
        current = parent_dir(self.package, dir_licensing)
        while current is not None and not current.licenses:
            current = parent_dir(self.package, current)
        return current

    def _copyright_ancestor(self, dir_licensing: DirLicensing) -> DirLicensing | None:
        current = parent_dir(self.package, dir_licensing)
        while current is not None and not current.copyrights:
            current = parent_dir(self.package, current)
        return current

    # clean up

    def _prune(self) -> None:
        survivors: list[FileLicensing] = []
        for file_licensing in self.package.file_licensings:
            if file_licensing.licenses or file_licensing.copyrights:
                survivors.append(file_licensing)
            elif file_licensing.content_in_archive is not None and self.options.keep_empty_scopes:
                survivors.append(file_licensing)
            else:
                self.candidates.append(file_licensing.content_in_archive)
        self.package.file_licensings = survivors
        self.package.dir_licensings = [
            dir_licensing for dir_licensing in self.package.dir_licensings if not dir_licensing.is_empty()
        ]

    def _unify_copyrights(self) -> None:
        collected: set[str] = set(self.package.unified_copyrights or ())
        for fact in self.package.default_copyrights:
            if fact.copyright:
                collected.add(fact.copyright)
        self.package.default_copyrights = []
        for dir_licensing in self.package.dir_licensings:
            collected.update(fact.copyright for fact in dir_licensing.copyrights if fact.copyright)
            dir_licensing.copyrights = []
        for file_licensing in self.package.file_licensings:
            collected.update(item.copyright for item in file_licensing.copyrights if item.copyright)
            file_licensing.copyrights = []
        self.package.unified_copyrights = sorted(collected)


def _values(items: Iterable[str | None]) -> list[str]:
    return [item for item in items if item is not None]

"""Rebuild directory and default scopes from file-scope facts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from osccpipe.domain.model import (
    SENTINEL_PATHS,
    CopyrightFact,
    DirLicensing,
    LicenseFact,
    ScopeLevel,
    Severity,
)
from osccpipe.domain.scopes import dir_scope_path, scope_level

from .base import flag

if TYPE_CHECKING:
    from osccpipe.domain.issues import IssueSink
    from osccpipe.domain.model import Package


@dataclass(frozen=True, slots=True)
class ScopePatterns:
    """File-name globs that open a default or directory scope."""

    licenses: tuple[str, ...]
    copyrights: tuple[str, ...]
    lowercase: bool = True

    def settings(self) -> dict[str, str]:
        return {
            "scopePatterns": ",".join(self.licenses),
            "copyrightScopePatterns": ",".join(self.copyrights),
            "lowerCaseComparisonOfScopePatterns": flag(self.lowercase),
        }


def regenerate_scopes(
    package: Package,
    patterns: ScopePatterns,
    *,
    sink: IssueSink | None = None,
    keep_sentinels: bool = False,
) -> None:
    """Replace ``package``'s directory and default scopes with ones derived from its files.

    Sentinel default facts (declared or configured licenses) are kept when
    ``keep_sentinels`` is set, or when no file opens the default scope.
    """

    sentinels = [fact for fact in package.default_licenses if fact.path in SENTINEL_PATHS]
    sentinel_copyrights = [fact for fact in package.default_copyrights if fact.path in SENTINEL_PATHS]
    defaults: list[LicenseFact] = []
    default_copyrights: list[CopyrightFact] = []
    dirs: dict[str, DirLicensing] = {}

    for file_licensing in package.file_licensings:
        license_level = scope_level(
            package, file_licensing.scope, patterns.licenses, lowercase=patterns.lowercase
        )
        if license_level is not ScopeLevel.FILE:
            facts = [
                LicenseFact(
                    license=item.license,
                    path=file_licensing.scope,
                    license_text_in_archive=item.license_text_in_archive,
                    original_licenses=item.original_licenses,
                )
                for item in file_licensing.licenses
            ]
            if license_level is ScopeLevel.DEFAULT:
                defaults.extend(facts)
            else:
                _dir_for(dirs, package, file_licensing.scope).licenses.extend(facts)

        copyright_level = scope_level(
            package, file_licensing.scope, patterns.copyrights, lowercase=patterns.lowercase
        )
        if copyright_level is not ScopeLevel.FILE:
            copyrights = [
                CopyrightFact(copyright=item.copyright, path=file_licensing.scope)
                for item in file_licensing.copyrights
            ]
            if copyright_level is ScopeLevel.DEFAULT:
                default_copyrights.extend(copyrights)
            else:
                _dir_for(dirs, package, file_licensing.scope).copyrights.extend(copyrights)

    if keep_sentinels or not defaults:
        defaults = [*sentinels, *defaults]
    if keep_sentinels or not default_copyrights:
        default_copyrights = [*sentinel_copyrights, *default_copyrights]

    package.default_licenses = defaults
    package.default_copyrights = default_copyrights
    package.dir_licensings = [dirs[scope] for scope in sorted(dirs) if not dirs[scope].is_empty()]

    if sink is not None:
        report_multiple_licenses(package, sink)


def _dir_for(dirs: dict[str, DirLicensing], package: Package, file_scope: str) -> DirLicensing:
    scope = dir_scope_path(package, file_scope)
    existing = dirs.get(scope)
    if existing is None:
        existing = DirLicensing(scope=scope)
        dirs[scope] = existing
    return existing


def report_multiple_licenses(package: Package, sink: IssueSink) -> None:
    default_values = sorted({fact.license for fact in package.default_licenses if fact.license})
    if len(default_values) > 1:
        sink.report(
            Severity.WARNING,
            f"DefaultScope: more than one license found: {' & '.join(default_values)} "
            "dual licensed or multiple licenses",
            package=package.identifier,
        )
    for dir_licensing in package.dir_licensings:
        values = sorted({fact.license for fact in dir_licensing.licenses if fact.license})
        if len(values) > 1:
            sink.report(
                Severity.WARNING,
                f"DirScope <{dir_licensing.scope}>: more than one license found: "
                f"{' & '.join(values)} dual licensed or multiple licenses",
                package=package.identifier,
            )

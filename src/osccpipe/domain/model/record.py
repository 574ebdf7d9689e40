"""Compliance record: project, packages and their scoped license/copyright facts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from .issues import IssueList

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .enums import DistributionType
    from .identifier import Identifier

FOUND_IN_FILE_SCOPE_DECLARED: Final[str] = "[DECLARED]"
FOUND_IN_FILE_SCOPE_CONFIGURED: Final[str] = "[CONFIGURED]"
SENTINEL_PATHS: Final[frozenset[str]] = frozenset(
    {FOUND_IN_FILE_SCOPE_DECLARED, FOUND_IN_FILE_SCOPE_CONFIGURED}
)
NOASSERTION: Final[str] = "NOASSERTION"
DEFAULT_ARCHIVE_PATH: Final[str] = "./licensefiles.zip"


@dataclass(slots=True, kw_only=True)
class LicenseFact:
    """License found for a default or directory scope.

    ``path`` names the file the fact was derived from, or one of the sentinel
    values for facts taken from the package manager's declared licenses.
    """

    license: str | None
    path: str
    license_text_in_archive: str | None = None
    original_licenses: str | None = None
    has_issues: bool = False
    issues: IssueList = field(default_factory=IssueList)


@dataclass(slots=True, kw_only=True)
class CopyrightFact:
    copyright: str | None
    path: str


@dataclass(slots=True, kw_only=True)
class FileLicense:
    license: str | None
    license_text_in_archive: str | None = None
    start_line: int | None = None
    original_licenses: str | None = None


@dataclass(slots=True, kw_only=True)
class FileCopyright:
    copyright: str


@dataclass(slots=True, kw_only=True)
class FileLicensing:
    scope: str
    content_in_archive: str | None = None
    licenses: list[FileLicense] = field(default_factory=list["FileLicense"])
    copyrights: list[FileCopyright] = field(default_factory=list["FileCopyright"])

    def is_empty(self) -> bool:
        return not self.licenses and not self.copyrights and self.content_in_archive is None

    def license_values(self) -> list[str | None]:
        return [item.license for item in self.licenses]


@dataclass(slots=True, kw_only=True)
class DirLicensing:
    scope: str
    licenses: list[LicenseFact] = field(default_factory=list["LicenseFact"])
    copyrights: list[CopyrightFact] = field(default_factory=list["CopyrightFact"])

    def is_empty(self) -> bool:
        return not self.licenses and not self.copyrights


@dataclass(slots=True, kw_only=True)
class Package:
    identifier: Identifier
    repository: str = ""
    source_root: str = ""
    reuse_compliant: bool = False
    has_issues: bool = False
    issues: IssueList = field(default_factory=IssueList)
    distribution: DistributionType | None = None
    package_type: str | None = None
    default_licenses: list[LicenseFact] = field(default_factory=list["LicenseFact"])
    default_copyrights: list[CopyrightFact] = field(default_factory=list["CopyrightFact"])
    reuse_licenses: list[LicenseFact] = field(default_factory=list["LicenseFact"])
    dir_licensings: list[DirLicensing] = field(default_factory=list["DirLicensing"])
    file_licensings: list[FileLicensing] = field(default_factory=list["FileLicensing"])
    unified_copyrights: list[str] | None = None

    def file_licensing(self, scope: str) -> FileLicensing | None:
        return next((item for item in self.file_licensings if item.scope == scope), None)

    def ensure_file_licensing(self, scope: str) -> FileLicensing:
        existing = self.file_licensing(scope)
        if existing is not None:
            return existing
        created = FileLicensing(scope=scope)
        self.file_licensings.append(created)
        return created

    def dir_licensing(self, scope: str) -> DirLicensing | None:
        return next((item for item in self.dir_licensings if item.scope == scope), None)

    def license_facts(self) -> Iterator[LicenseFact]:
        """Default facts first, then every directory fact."""

        yield from self.default_licenses
        for dir_licensing in self.dir_licensings:
            yield from dir_licensing.licenses

    def archive_references(self) -> Iterator[str]:
        """Yield every archive path this package references (duplicates included)."""

        for fact in (*self.license_facts(), *self.reuse_licenses):
            if fact.license_text_in_archive is not None:
                yield fact.license_text_in_archive
        for file_licensing in self.file_licensings:
            if file_licensing.content_in_archive is not None:
                yield file_licensing.content_in_archive
            for file_license in file_licensing.licenses:
                if file_license.license_text_in_archive is not None:
                    yield file_license.license_text_in_archive

    def has_error_issues(self) -> bool:
        return self.issues.has_errors() or any(
            fact.issues.has_errors() for fact in self.license_facts()
        )


@dataclass(slots=True, kw_only=True)
class ArtifactCollection:
    cid: str = ""
    author: str | None = None
    release: str | None = None
    date: str | None = None
    archive_path: str = DEFAULT_ARCHIVE_PATH
    archive_type: str = "ZIP"
    merged_ids: list[str] = field(default_factory=list[str])


@dataclass(slots=True, kw_only=True)
class Project:
    collection: ArtifactCollection = field(default_factory=ArtifactCollection)
    packages: list[Package] = field(default_factory=list["Package"])
    has_issues: bool = False
    issues: IssueList = field(default_factory=IssueList)
    config: dict[str, object] | None = None

    def package(self, identifier: Identifier) -> Package | None:
        return next((item for item in self.packages if item.identifier == identifier), None)

    def archive_references(self) -> Iterator[str]:
        for package in self.packages:
            yield from package.archive_references()

"""Pydantic schemas for the OSCC JSON document."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OsccBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class OsccIssue(OsccBaseModel):
    id: str
    msg: str = ""


class OsccIssueList(OsccBaseModel):
    infos: list[OsccIssue] = Field(default_factory=list)
    warnings: list[OsccIssue] = Field(default_factory=list)
    errors: list[OsccIssue] = Field(default_factory=list)


class OsccLicense(OsccBaseModel):
    """License entry of the default, REUSE or directory scope."""

    found_in_file_scope: str | None = Field(default=None, alias="foundInFileScope")
    license: str | None = None
    license_text_in_archive: str | None = Field(default=None, alias="licenseTextInArchive")
    original_licenses: str | None = Field(default=None, alias="originalLicenses")
    has_issues: bool = Field(default=False, alias="hasIssues")
    issues: OsccIssueList | None = None


class OsccCopyright(OsccBaseModel):
    found_in_file_scope: str | None = Field(default=None, alias="foundInFileScope")
    copyright: str | None = None


class OsccDirLicensing(OsccBaseModel):
    dir_scope: str = Field(alias="dirScope")
    dir_licenses: list[OsccLicense] = Field(default_factory=list, alias="dirLicenses")
    dir_copyrights: list[OsccCopyright] = Field(default_factory=list, alias="dirCopyrights")


class OsccFileLicense(OsccBaseModel):
    license: str | None = None
    license_text_in_archive: str | None = Field(default=None, alias="licenseTextInArchive")
    start_line: int | None = Field(default=None, alias="startLine")
    original_licenses: str | None = Field(default=None, alias="originalLicenses")


class OsccFileCopyright(OsccBaseModel):
    copyright: str


class OsccFileLicensing(OsccBaseModel):
    file_scope: str = Field(alias="fileScope")
    file_content_in_archive: str | None = Field(default=None, alias="fileContentInArchive")
    file_licenses: list[OsccFileLicense] = Field(default_factory=list, alias="fileLicenses")
    file_copyrights: list[OsccFileCopyright] = Field(default_factory=list, alias="fileCopyrights")


class OsccPackage(OsccBaseModel):
    pid: str = ""
    release: str | None = None
    repository: str = ""
    id: str
    source_root: str = Field(default="", alias="sourceRoot")
    reuse_compliant: bool = Field(default=False, alias="reuseCompliant")
    has_issues: bool = Field(default=False, alias="hasIssues")
    issues: OsccIssueList | None = None
    distribution: str | None = None
    package_type: str | None = Field(default=None, alias="packageType")
    default_licensings: list[OsccLicense] = Field(default_factory=list, alias="defaultLicensings")
    default_copyrights: list[OsccCopyright] = Field(default_factory=list, alias="defaultCopyrights")
    reuse_licensings: list[OsccLicense] = Field(default_factory=list, alias="reuseLicensings")
    dir_licensings: list[OsccDirLicensing] = Field(default_factory=list, alias="dirLicensings")
    file_licensings: list[OsccFileLicensing] = Field(default_factory=list, alias="fileLicensings")
    unified_copyrights: list[str] | None = Field(default=None, alias="unifiedCopyrights")


class OsccCollection(OsccBaseModel):
    cid: str = ""
    author: str | None = None
    release: str | None = None
    date: str | None = None
    archive_path: str = Field(default="./licensefiles.zip", alias="archivePath")
    archive_type: str = Field(default="ZIP", alias="archiveType")
    merged_ids: list[str] = Field(default_factory=list, alias="mergedIds")


class OsccDocument(OsccBaseModel):
    collection: OsccCollection = Field(
        default_factory=OsccCollection, alias="complianceArtifactCollection"
    )
    packages: list[OsccPackage] = Field(default_factory=list, alias="complianceArtifactPackages")
    has_issues: bool = Field(default=False, alias="hasIssues")
    issues: OsccIssueList | None = None
    config: dict[str, Any] | None = None

    def to_json(self) -> str:
        """Serialize with OSCC key names, leaving out nulls and empty collections."""

        payload = _drop_empty(self.model_dump(mode="json", by_alias=True, exclude={"config"}))
        if self.config is not None:
            payload["config"] = self.config
        return json.dumps(payload, indent=2, ensure_ascii=False)


def _drop_empty(value: Any) -> Any:
    if isinstance(value, dict):
        cleaned = {key: _drop_empty(item) for key, item in value.items()}
        return {key: item for key, item in cleaned.items() if item not in (None, [], {})}
    if isinstance(value, list):
        return [_drop_empty(item) for item in value]
    return value

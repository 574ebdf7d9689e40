"""Translate between OSCC schema models and the domain record."""

from __future__ import annotations

import logging

from osccpipe.domain.model import (
    ArtifactCollection,
    CopyrightFact,
    DirLicensing,
    DistributionType,
    FileCopyright,
    FileLicense,
    FileLicensing,
    Identifier,
    IssueEntry,
    IssueList,
    LicenseFact,
    Package,
    Project,
)

from .schema import (
    OsccCollection,
    OsccCopyright,
    OsccDirLicensing,
    OsccDocument,
    OsccFileCopyright,
    OsccFileLicense,
    OsccFileLicensing,
    OsccIssue,
    OsccIssueList,
    OsccLicense,
    OsccPackage,
)

log = logging.getLogger(__name__)

_DISTRIBUTIONS = {member.value: member for member in DistributionType}


def translate_document(document: OsccDocument) -> Project:
    collection = document.collection
    return Project(
        collection=ArtifactCollection(
            cid=collection.cid,
            author=collection.author,
            release=collection.release,
            date=collection.date,
            archive_path=collection.archive_path,
            archive_type=collection.archive_type,
            merged_ids=list(collection.merged_ids),
        ),
        packages=[_translate_package(package) for package in document.packages],
        has_issues=document.has_issues,
        issues=_translate_issues(document.issues),
        config=document.config,
    )


def _translate_package(package: OsccPackage) -> Package:
    return Package(
        identifier=Identifier.parse(package.id),
        repository=package.repository,
        source_root=package.source_root,
        reuse_compliant=package.reuse_compliant,
        has_issues=package.has_issues,
        issues=_translate_issues(package.issues),
        distribution=_translate_distribution(package.distribution, package.id),
        package_type=package.package_type,
        default_licenses=[_translate_license(item) for item in package.default_licensings],
        default_copyrights=[_translate_copyright(item) for item in package.default_copyrights],
        reuse_licenses=[_translate_license(item) for item in package.reuse_licensings],
        dir_licensings=[
            DirLicensing(
                scope=item.dir_scope,
                licenses=[_translate_license(entry) for entry in item.dir_licenses],
                copyrights=[_translate_copyright(entry) for entry in item.dir_copyrights],
            )
            for item in package.dir_licensings
        ],
        file_licensings=[
            FileLicensing(
                scope=item.file_scope,
                content_in_archive=item.file_content_in_archive,
                licenses=[
                    FileLicense(
                        license=entry.license,
                        license_text_in_archive=entry.license_text_in_archive,
                        start_line=entry.start_line,
                        original_licenses=entry.original_licenses,
                    )
                    for entry in item.file_licenses
                ],
                copyrights=[FileCopyright(copyright=entry.copyright) for entry in item.file_copyrights],
            )
            for item in package.file_licensings
        ],
        unified_copyrights=(
            list(package.unified_copyrights) if package.unified_copyrights is not None else None
        ),
    )


def _translate_distribution(value: str | None, package_id: str) -> DistributionType | None:
    if value is None:
        return None
    distribution = _DISTRIBUTIONS.get(value.upper())
    if distribution is None:
        log.warning("Unknown distribution %r for %s ignored", value, package_id)
    return distribution


def _translate_license(item: OsccLicense) -> LicenseFact:
    return LicenseFact(
        license=item.license,
        path=item.found_in_file_scope or "",
        license_text_in_archive=item.license_text_in_archive,
        original_licenses=item.original_licenses,
        has_issues=item.has_issues,
        issues=_translate_issues(item.issues),
    )


def _translate_copyright(item: OsccCopyright) -> CopyrightFact:
    return CopyrightFact(copyright=item.copyright, path=item.found_in_file_scope or "")


def _translate_issues(issues: OsccIssueList | None) -> IssueList:
    if issues is None:
        return IssueList()
    return IssueList(
        infos=[IssueEntry(id=entry.id, message=entry.msg) for entry in issues.infos],
        warnings=[IssueEntry(id=entry.id, message=entry.msg) for entry in issues.warnings],
        errors=[IssueEntry(id=entry.id, message=entry.msg) for entry in issues.errors],
    )


def to_document(project: Project) -> OsccDocument:
    collection = project.collection
    return OsccDocument(
        collection=OsccCollection(
            cid=collection.cid,
            author=collection.author,
            release=collection.release,
            date=collection.date,
            archive_path=collection.archive_path,
            archive_type=collection.archive_type,
            merged_ids=list(collection.merged_ids),
        ),
        packages=[_package_model(package) for package in project.packages],
        has_issues=project.has_issues,
        issues=_issues_model(project.issues),
        config=project.config,
    )


def _package_model(package: Package) -> OsccPackage:
    identifier = package.identifier
    return OsccPackage(
        pid=identifier.name,
        release=identifier.version,
        repository=package.repository,
        id=identifier.coordinates,
        source_root=package.source_root,
        reuse_compliant=package.reuse_compliant,
        has_issues=package.has_issues,
        issues=_issues_model(package.issues),
        distribution=package.distribution.value if package.distribution is not None else None,
        package_type=package.package_type,
        default_licensings=[_license_model(fact) for fact in package.default_licenses],
        default_copyrights=[_copyright_model(fact) for fact in package.default_copyrights],
        reuse_licensings=[_license_model(fact) for fact in package.reuse_licenses],
        dir_licensings=[
            OsccDirLicensing(
                dir_scope=item.scope,
                dir_licenses=[_license_model(fact) for fact in item.licenses],
                dir_copyrights=[_copyright_model(fact) for fact in item.copyrights],
            )
            for item in package.dir_licensings
        ],
        file_licensings=[
            OsccFileLicensing(
                file_scope=item.scope,
                file_content_in_archive=item.content_in_archive,
                file_licenses=[
                    OsccFileLicense(
                        license=entry.license,
                        license_text_in_archive=entry.license_text_in_archive,
                        start_line=entry.start_line,
                        original_licenses=entry.original_licenses,
                    )
                    for entry in item.licenses
                ],
                file_copyrights=[OsccFileCopyright(copyright=entry.copyright) for entry in item.copyrights],
            )
            for item in package.file_licensings
        ],
        unified_copyrights=package.unified_copyrights,
    )


def _license_model(fact: LicenseFact) -> OsccLicense:
    return OsccLicense(
        found_in_file_scope=fact.path,
        license=fact.license,
        license_text_in_archive=fact.license_text_in_archive,
        original_licenses=fact.original_licenses,
        has_issues=fact.has_issues,
        issues=_issues_model(fact.issues),
    )


def _copyright_model(fact: CopyrightFact) -> OsccCopyright:
    return OsccCopyright(found_in_file_scope=fact.path, copyright=fact.copyright)


def _issues_model(issues: IssueList) -> OsccIssueList | None:
    if issues.is_empty():
        return None
    return OsccIssueList(
        infos=[OsccIssue(id=entry.id, msg=entry.message) for entry in issues.infos],
        warnings=[OsccIssue(id=entry.id, msg=entry.message) for entry in issues.warnings],
        errors=[OsccIssue(id=entry.id, msg=entry.message) for entry in issues.errors],
    )

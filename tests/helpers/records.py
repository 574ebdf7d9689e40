"""Builders for small compliance records and their archives."""

from __future__ import annotations

import zipfile
from typing import TYPE_CHECKING

from osccpipe.adapters.oscc import JsonRecordRepository
from osccpipe.domain.model import (
    ArtifactCollection,
    CopyrightFact,
    FileCopyright,
    FileLicense,
    FileLicensing,
    Identifier,
    LicenseFact,
    Package,
    Project,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from pathlib import Path

    from osccpipe.domain.archive import BlobStore

LEFT_PAD = "npm::left-pad:1.0.0"
FIXED_DATE = "2026-01-01T00:00:00"


def make_file(
    scope: str,
    licenses: Iterable[str | None] = (),
    *,
    texts: Iterable[str | None] = (),
    copyrights: Iterable[str] = (),
    content: str | None = None,
) -> FileLicensing:
    """File scope whose n-th license gets the n-th archive text (if any)."""

    text_list = list(texts)
    return FileLicensing(
        scope=scope,
        content_in_archive=content,
        licenses=[
            FileLicense(
                license=value,
                license_text_in_archive=text_list[index] if index < len(text_list) else None,
            )
            for index, value in enumerate(licenses)
        ],
        copyrights=[FileCopyright(copyright=value) for value in copyrights],
    )


def license_fact(value: str | None, path: str, text: str | None = None) -> LicenseFact:
    return LicenseFact(license=value, path=path, license_text_in_archive=text)


def copyright_fact(value: str, path: str) -> CopyrightFact:
    return CopyrightFact(copyright=value, path=path)


def make_package(
    coordinates: str = LEFT_PAD,
    *,
    files: Iterable[FileLicensing] = (),
    defaults: Iterable[LicenseFact] = (),
    default_copyrights: Iterable[CopyrightFact] = (),
    **kwargs: object,
) -> Package:
    return Package(
        identifier=Identifier.parse(coordinates),
        file_licensings=list(files),
        default_licenses=list(defaults),
        default_copyrights=list(default_copyrights),
        **kwargs,  # type: ignore[arg-type]
    )


def make_project(*packages: Package, cid: str = "demo", author: str | None = None) -> Project:
    return Project(
        collection=ArtifactCollection(cid=cid, author=author),
        packages=list(packages),
    )


def fill_store(store: BlobStore, blobs: Mapping[str, str]) -> None:
    for name, text in blobs.items():
        path = store.path_of(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")


def write_record(
    directory: Path,
    project: Project,
    blobs: Mapping[str, str],
    *,
    stem: str = "input",
) -> Path:
    """Write ``<stem>.oscc`` and ``<stem>.zip`` holding ``blobs`` into ``directory``."""

    directory.mkdir(parents=True, exist_ok=True)
    project.collection.archive_path = f"./{stem}.zip"
    with zipfile.ZipFile(directory / f"{stem}.zip", "w") as archive:
        for name, text in blobs.items():
            archive.writestr(name, text)
    record_path = directory / f"{stem}.oscc"
    JsonRecordRepository().save(project, record_path)
    return record_path


def read_archive(path: Path) -> dict[str, str]:
    with zipfile.ZipFile(path) as archive:
        return {name: archive.read(name).decode("utf-8") for name in archive.namelist()}


def write_rules(directory: Path, name: str, content: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(content, encoding="utf-8")
    return path

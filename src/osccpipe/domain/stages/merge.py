"""Merge several compliance records and their archives into one.

Packages carrying error-level issues are skipped. A package identifier that shows
up in more than one input is a collision, handled by :class:`CollisionPolicy`:

* ``first-wins`` keeps the copy from the first input (inputs are ordered by name)
  and reports a warning for every later copy.
* ``reject`` drops every copy and reports an error at project scope.

Blobs are renamed to ``<sha1(cid:input:path)[:12]>_<basename>``. The input file
name is part of the hash, so two inputs sharing a cid never overwrite each
other's archive entries, and identical inputs always produce the same names.
"""

from __future__ import annotations

import hashlib
import logging
from collections import Counter
from dataclasses import dataclass
from enum import StrEnum
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Final

from osccpipe.domain.model import ArtifactCollection, Project

if TYPE_CHECKING:
    from collections.abc import Sequence

    from osccpipe.domain.archive import BlobStore
    from osccpipe.domain.issues import IssueTracker
    from osccpipe.domain.model import Identifier, Package

log = logging.getLogger(__name__)

MERGER_AUTHOR: Final[str] = "OSCake-Merger"
MERGER_CONFIG_KEY: Final[str] = "merger"


class CollisionPolicy(StrEnum):
    FIRST_WINS = "first-wins"
    REJECT = "reject"


@dataclass(frozen=True, slots=True)
class MergeInput:
    """One record to merge, with the unpacked archive it references."""

    name: str
    project: Project
    store: BlobStore


@dataclass(frozen=True, slots=True, kw_only=True)
class MergeOptions:
    cid: str
    archive_name: str = "merged"
    policy: CollisionPolicy = CollisionPolicy.FIRST_WINS
    author: str = MERGER_AUTHOR

    def settings(self) -> dict[str, str]:
        return {"cid": self.cid, "archiveName": self.archive_name, "policy": str(self.policy)}


def merged_blob_name(cid: str, input_name: str, path: str) -> str:
    digest = hashlib.sha1(f"{cid}:{input_name}:{path}".encode()).hexdigest()[:12]
    return f"{digest}_{PurePosixPath(path).name}"


def merge_records(
    inputs: Sequence[MergeInput],
    target: BlobStore,
    *,
    options: MergeOptions,
    issues: IssueTracker,
) -> Project:
    """Combine ``inputs`` into a new project whose blobs are copied into ``target``."""

    ordered = sorted(inputs, key=lambda item: item.name)
    eligible = {item.name: _eligible_packages(item, issues) for item in ordered}
    occurrences = Counter(
        package.identifier for packages in eligible.values() for package in packages
    )

    collection = ArtifactCollection(
        cid=options.cid,
        author=options.author,
        archive_path=f"{options.archive_name}.zip",
    )
    merged = Project(collection=collection)
    taken: dict[Identifier, str] = {}

    for item in ordered:
        source_cid = item.project.collection.cid
        for package in eligible[item.name]:
            if occurrences[package.identifier] > 1:
                if options.policy is CollisionPolicy.REJECT:
                    if package.identifier not in taken:
                        taken[package.identifier] = item.name
                        issues.error(
                            f"Package {package.identifier} occurs in several inputs and was not merged"
                        )
                    continue
                if package.identifier in taken:
                    issues.warning(
                        f"Package from {item.name} ignored, already merged from "
                        f"{taken[package.identifier]}",
                        package=package.identifier,
                    )
                    continue
            taken[package.identifier] = item.name
            _relocate_blobs(package, source_cid, item, target)
            merged.packages.append(package)

        _append_unique(collection.merged_ids, [source_cid, *item.project.collection.merged_ids])
        issues.info(f"File: <{item.name}> successfully merged")

    log.info("Merged %d package(s) from %d input(s)", len(merged.packages), len(ordered))
    return merged


def _eligible_packages(item: MergeInput, issues: IssueTracker) -> list[Package]:
    eligible: list[Package] = []
    for package in item.project.packages:
        if package.has_error_issues():
            issues.warning(
                f"Package from {item.name} has unresolved errors and was not merged",
                package=package.identifier,
            )
            continue
        eligible.append(package)
    return eligible


def _relocate_blobs(package: Package, cid: str, source: MergeInput, target: BlobStore) -> None:
    def move(name: str | None) -> str | None:
        if name is None:
            return None
        return target.copy_from(source.store, name, merged_blob_name(cid, source.name, name))

    for fact in (*package.license_facts(), *package.reuse_licenses):
        fact.license_text_in_archive = move(fact.license_text_in_archive)
    for file_licensing in package.file_licensings:
        file_licensing.content_in_archive = move(file_licensing.content_in_archive)
        for file_license in file_licensing.licenses:
            file_license.license_text_in_archive = move(file_license.license_text_in_archive)


def _append_unique(target: list[str], values: Sequence[str]) -> None:
    for value in values:
        if value and value not in target:
            target.append(value)

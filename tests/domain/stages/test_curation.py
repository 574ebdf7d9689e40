from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from osccpipe.domain.errors import RuleValidationError
from osccpipe.domain.model import FOUND_IN_FILE_SCOPE_DECLARED, Identifier, IssueEntry, Severity
from osccpipe.domain.rules import Rule, RuleCatalog, RuleKind
from osccpipe.domain.stages.curation import (
    CopyrightCuration,
    CurationPayload,
    CurationStage,
    LicenseCuration,
    ScopeCuration,
    copyright_matches,
    curation_validator,
    flat_archive_name,
)
from tests.helpers.records import (
    LEFT_PAD,
    copyright_fact,
    fill_store,
    license_fact,
    make_file,
    make_package,
    make_project,
)

if TYPE_CHECKING:
    from pathlib import Path

    from osccpipe.domain.archive import BlobStore
    from osccpipe.domain.stages import ScopePatterns, StageContext


def _rule(
    payload: CurationPayload, coordinates: str = LEFT_PAD, origin: str = "curations.yml"
) -> Rule[CurationPayload]:
    return Rule(
        kind=RuleKind.CURATION,
        identifier=Identifier.parse(coordinates),
        origin=origin,
        payload=payload,
    )


def _update(*curations: ScopeCuration, **kwargs: object) -> CurationPayload:
    return CurationPayload(package_modifier="update", curations=curations, **kwargs)  # type: ignore[arg-type]


def _stage(
    rules: list[Rule[CurationPayload]],
    patterns: ScopePatterns,
    context: StageContext,
    file_store: Path | None = None,
) -> CurationStage:
    catalog = RuleCatalog.build(rules, validate=curation_validator(file_store), sink=context.issues)
    return CurationStage(catalog=catalog, patterns=patterns, file_store=file_store)


def test_update_applies_deletes_before_inserts(
    patterns: ScopePatterns, stage_context: StageContext
) -> None:
    package = make_package(files=[make_file("a.js", ["MIT", "BSD-3-Clause"])])
    project = make_project(package)
    rule = _rule(
        _update(
            ScopeCuration(
                file_scope="a.js",
                licenses=(
                    LicenseCuration(modifier="insert", license="Apache-2.0"),
                    LicenseCuration(modifier="delete", license="MIT"),
                ),
            )
        )
    )

    _stage([rule], patterns, stage_context).run(project, context=stage_context)

    assert package.file_licensings[0].license_values() == ["BSD-3-Clause", "Apache-2.0"]
    assert stage_context.changed_packages == 1


def test_ambiguous_rules_leave_the_package_untouched(
    patterns: ScopePatterns, stage_context: StageContext
) -> None:
    package = make_package(files=[make_file("a.js", ["MIT"])])
    project = make_project(package)
    delete_mit = ScopeCuration(
        file_scope="a.js", licenses=(LicenseCuration(modifier="delete", license="MIT"),)
    )
    rules = [
        _rule(_update(delete_mit), origin="one.yml"),
        _rule(_update(delete_mit), coordinates="npm::left-pad:[1.0,2.0)", origin="two.yml"),
    ]

    _stage(rules, patterns, stage_context).run(project, context=stage_context)

    assert package.file_licensings[0].license_values() == ["MIT"]
    assert stage_context.issues.count(Severity.ERROR) == 1
    assert "one.yml" in stage_context.issues.issues[-1].message


def test_deleting_a_package_releases_only_its_own_blobs(
    patterns: ScopePatterns, stage_context: StageContext, blob_store: BlobStore
) -> None:
    fill_store(blob_store, {"shared.txt": "MIT", "only.txt": "BSD"})
    doomed = make_package(
        files=[make_file("a.js", ["MIT", "BSD-3-Clause"], texts=["shared.txt", "only.txt"])]
    )
    kept = make_package("npm::other:2.0.0", files=[make_file("b.js", ["MIT"], texts=["shared.txt"])])
    project = make_project(doomed, kept)

    _stage([_rule(CurationPayload(package_modifier="delete"))], patterns, stage_context).run(
        project, context=stage_context
    )

    assert project.packages == [kept]
    assert blob_store.names() == {"shared.txt"}
    assert stage_context.released_blobs == ["only.txt"]


def test_deleting_the_last_license_of_a_license_file_drops_the_default(
    patterns: ScopePatterns, stage_context: StageContext, blob_store: BlobStore
) -> None:
    fill_store(blob_store, {"LICENSE": "MIT text"})
    package = make_package(
        files=[make_file("LICENSE", ["MIT"], texts=["LICENSE"])],
        defaults=[license_fact("MIT", "LICENSE", "LICENSE")],
    )
    project = make_project(package)
    rule = _rule(
        _update(
            ScopeCuration(
                file_scope="LICENSE", licenses=(LicenseCuration(modifier="delete", license="*"),)
            )
        )
    )

    _stage([rule], patterns, stage_context).run(project, context=stage_context)

    assert package.file_licensings == []
    assert package.default_licenses == []
    assert blob_store.names() == set()


def test_insert_copies_the_license_text_from_the_file_store(
    patterns: ScopePatterns, stage_context: StageContext, blob_store: BlobStore, tmp_path: Path
) -> None:
    file_store = tmp_path / "store"
    file_store.mkdir()
    (file_store / "MIT.txt").write_text("MIT text", encoding="utf-8")
    package = make_package(files=[make_file("lib/index.js", ["MIT"])])
    project = make_project(package)
    rule = _rule(
        _update(
            ScopeCuration(
                file_scope="lib/LICENSE",
                licenses=(
                    LicenseCuration(
                        modifier="insert", license="MIT", license_text_in_archive="MIT.txt"
                    ),
                ),
            )
        )
    )

    _stage([rule], patterns, stage_context, file_store).run(project, context=stage_context)

    expected = flat_archive_name(package.identifier, "lib/LICENSE", "MIT")
    assert expected == "npm%unknown%left-pad%1.0.0%lib%LICENSE.MIT"
    inserted = package.file_licensing("lib/LICENSE")
    assert inserted is not None
    assert inserted.licenses[0].license_text_in_archive == expected
    assert blob_store.path_of(expected).read_text(encoding="utf-8") == "MIT text"
    assert [dir_licensing.scope for dir_licensing in package.dir_licensings] == ["lib"]
    assert package.dir_licensings[0].licenses[0].license_text_in_archive == expected


def test_copyright_curations_support_wildcards(
    patterns: ScopePatterns, stage_context: StageContext
) -> None:
    package = make_package(
        files=[
            make_file("a.js", copyrights=["(c) 2020 ACME Inc.", "(c) Jane Doe"]),
            make_file("b.js", copyrights=["(c) 2021 ACME Inc."]),
        ],
        default_copyrights=[copyright_fact("(c) ACME", FOUND_IN_FILE_SCOPE_DECLARED)],
    )
    project = make_project(package)
    rule = _rule(
        _update(
            ScopeCuration(
                file_scope="*.js",
                copyrights=(CopyrightCuration(modifier="delete", copyright="(c) 20?? ACME*"),),
            ),
            ScopeCuration(
                file_scope="<DEFAULT_LICENSING>",
                copyrights=(
                    CopyrightCuration(modifier="delete-all"),
                    CopyrightCuration(modifier="insert", copyright="(c) ACME \\* all rights"),
                ),
            ),
        )
    )

    _stage([rule], patterns, stage_context).run(project, context=stage_context)

    assert [item.scope for item in package.file_licensings] == ["a.js"]
    assert [item.copyright for item in package.file_licensings[0].copyrights] == ["(c) Jane Doe"]
    assert [fact.copyright for fact in package.default_copyrights] == ["(c) ACME * all rights"]


def test_default_license_delete_without_text_matches_any_text(
    patterns: ScopePatterns, stage_context: StageContext
) -> None:
    package = make_package(
        defaults=[
            license_fact("MIT", FOUND_IN_FILE_SCOPE_DECLARED),
            license_fact("BSD-2-Clause", FOUND_IN_FILE_SCOPE_DECLARED),
        ]
    )
    project = make_project(package)
    rule = _rule(
        _update(
            ScopeCuration(
                file_scope="<DEFAULT_LICENSING>",
                licenses=(
                    LicenseCuration(modifier="delete", license="MIT"),
                    LicenseCuration(modifier="insert", license="Apache-2.0"),
                ),
            )
        )
    )

    _stage([rule], patterns, stage_context).run(project, context=stage_context)

    assert [fact.license for fact in package.default_licenses] == ["BSD-2-Clause", "Apache-2.0"]
    assert package.default_licenses[1].path == FOUND_IN_FILE_SCOPE_DECLARED


def test_resolved_issues_are_removed(patterns: ScopePatterns, stage_context: StageContext) -> None:
    package = make_package()
    package.issues.warnings.append(IssueEntry(id="W01", message="check me"))
    package.issues.errors.append(IssueEntry(id="E02", message="broken"))
    project = make_project(package)
    rule = _rule(_update(resolved_issues=("W01", "E*", "I07")))

    _stage([rule], patterns, stage_context).run(project, context=stage_context)

    assert package.issues.is_empty()
    messages = [issue.message for issue in stage_context.issues.issues]
    assert "Resolved issue(s) removed: W01, E02" in messages
    assert "Issue(s) to resolve not found: I07" in messages


def test_insert_rule_adds_a_new_package(patterns: ScopePatterns, stage_context: StageContext) -> None:
    existing = make_package()
    project = make_project(existing)
    rules = [
        _rule(
            CurationPayload(
                package_modifier="insert",
                repository="https://example.org/new.git",
                curations=(
                    ScopeCuration(
                        file_scope="LICENSE",
                        licenses=(LicenseCuration(modifier="insert", license="MIT"),),
                    ),
                ),
            ),
            coordinates="npm::new:1.0.0",
        ),
        _rule(CurationPayload(package_modifier="insert"), origin="again.yml"),
    ]

    _stage(rules, patterns, stage_context).run(project, context=stage_context)

    inserted = project.package(Identifier.parse("npm::new:1.0.0"))
    assert inserted is not None
    assert inserted.repository == "https://example.org/new.git"
    assert [fact.license for fact in inserted.default_licenses] == ["MIT"]
    assert len(project.packages) == 2
    warnings = [issue for issue in stage_context.issues.issues if issue.severity is Severity.WARNING]
    assert any("Package already exists" in issue.message for issue in warnings)


@pytest.mark.parametrize(
    ("payload", "coordinates", "message"),
    [
        (
            CurationPayload(
                package_modifier="delete",
                curations=(ScopeCuration(file_scope="a.js"),),
            ),
            LEFT_PAD,
            "does not allow curations",
        ),
        (CurationPayload(package_modifier="insert"), "npm::left-pad:[1.0,2.0]", "exact version"),
        (
            CurationPayload(package_modifier="insert", resolved_issues=("W01",)),
            LEFT_PAD,
            "only allowed for 'update'",
        ),
        (_update(resolved_issues=("X01",)), LEFT_PAD, "invalid issue id"),
        (
            _update(
                ScopeCuration(
                    file_scope="a.js", licenses=(LicenseCuration(modifier="insert", license="*"),)
                )
            ),
            LEFT_PAD,
            "concrete license",
        ),
        (
            _update(
                ScopeCuration(
                    file_scope="a.js",
                    licenses=(
                        LicenseCuration(
                            modifier="update", license="MIT", license_text_in_archive="*"
                        ),
                    ),
                )
            ),
            LEFT_PAD,
            "cannot use",
        ),
        (
            _update(
                ScopeCuration(
                    file_scope="a.js",
                    licenses=(
                        LicenseCuration(
                            modifier="insert", license="MIT", license_text_in_archive="MIT.txt"
                        ),
                    ),
                )
            ),
            LEFT_PAD,
            "no file store",
        ),
        (
            _update(
                ScopeCuration(
                    file_scope="a.js",
                    copyrights=(CopyrightCuration(modifier="delete", copyright="**ACME"),),
                )
            ),
            LEFT_PAD,
            "must not contain",
        ),
        (
            _update(
                ScopeCuration(
                    file_scope="a.js",
                    copyrights=(CopyrightCuration(modifier="delete-all", copyright="ACME"),),
                )
            ),
            LEFT_PAD,
            "must not name",
        ),
        (
            CurationPayload(
                package_modifier="insert",
                curations=(
                    ScopeCuration(
                        file_scope="a.js",
                        licenses=(LicenseCuration(modifier="delete", license="MIT"),),
                    ),
                ),
            ),
            LEFT_PAD,
            "not allowed here",
        ),
    ],
)
def test_validator_rejects_invalid_rules(
    payload: CurationPayload, coordinates: str, message: str
) -> None:
    with pytest.raises(RuleValidationError, match=message):
        curation_validator(None)(_rule(payload, coordinates=coordinates))


def test_copyright_wildcards_honour_escapes() -> None:
    assert copyright_matches("(c) * ACME", "(c) 2020 ACME")
    assert copyright_matches("(c) 20?? ACME", "(c) 2021 ACME")
    assert not copyright_matches("(c) \\* ACME", "(c) 2020 ACME")
    assert copyright_matches("(c) \\* ACME", "(c) * ACME")

from __future__ import annotations

from typing import TYPE_CHECKING

from osccpipe.domain.issues import IssueTracker
from osccpipe.domain.model import Phase
from osccpipe.domain.stages import (
    DeduplicationOptions,
    DeduplicationStage,
    MergeOptions,
    StageManager,
    StageOutcome,
)
from osccpipe.domain.stages.merge import merged_blob_name
from tests.helpers.records import (
    FIXED_DATE,
    license_fact,
    make_file,
    make_package,
    make_project,
    read_archive,
    write_record,
)

if TYPE_CHECKING:
    from pathlib import Path

    from osccpipe.adapters.archive import ZipArchiveService
    from osccpipe.adapters.oscc import JsonRecordRepository
    from osccpipe.domain.model import Project


def _layered_project() -> Project:
    return make_project(
        make_package(
            files=[
                make_file("LICENSE", ["MIT"], texts=["LICENSE"]),
                make_file("a.js", ["MIT"], texts=["a.js.MIT"]),
            ],
            defaults=[license_fact("MIT", "LICENSE", "LICENSE")],
        )
    )


LAYERED_BLOBS = {"LICENSE": "MIT text", "a.js.MIT": "MIT text"}


def test_successful_run_writes_suffixed_record_and_archive(
    tmp_path: Path, manager: StageManager, repository: JsonRecordRepository
) -> None:
    record = write_record(tmp_path / "in", _layered_project(), LAYERED_BLOBS)
    before = record.read_text(encoding="utf-8")

    result = manager.run(DeduplicationStage(), record, tmp_path / "out")

    assert result.outcome is StageOutcome.SUCCESS
    assert result.changed_packages == 1
    assert result.record_path == tmp_path / "out" / "input_deduplicated.oscc"
    assert result.archive_path == tmp_path / "out" / "input_deduplicated.zip"
    assert read_archive(result.archive_path) == {"LICENSE": "MIT text"}

    written = repository.load(result.record_path)
    assert written.collection.author == "OSCake-Deduplicator"
    assert written.collection.date == FIXED_DATE
    assert written.collection.archive_path == "./input_deduplicated.zip"
    assert written.packages[0].file_licensings == []

    assert record.read_text(encoding="utf-8") == before
    assert read_archive(tmp_path / "in" / "input.zip") == LAYERED_BLOBS


def test_stage_settings_are_recorded_in_the_config_block(
    tmp_path: Path, manager: StageManager, repository: JsonRecordRepository
) -> None:
    project = _layered_project()
    project.config = {"reporter": {"configFile": {"issueLevel": "1"}}}
    record = write_record(tmp_path / "in", project, LAYERED_BLOBS)

    result = manager.run(
        DeduplicationStage(options=DeduplicationOptions(preserve_file_scopes=True)),
        record,
        tmp_path / "out",
    )

    assert result.record_path is not None
    config = repository.load(result.record_path).config
    assert config is not None
    assert config["reporter"] == {"configFile": {"issueLevel": "1"}}
    assert config["deduplicator"] == {
        "configFile": {
            "keepEmptyScopes": "true",
            "createUnifiedCopyrights": "false",
            "preserveFileScopes": "true",
            "compareOnlyDistinctLicensesCopyrights": "true",
            "processPackagesWithIssues": "false",
            "issueLevel": "2",
        }
    }


def test_records_written_by_the_same_stage_are_refused(
    tmp_path: Path, manager: StageManager
) -> None:
    project = _layered_project()
    project.collection.author = "OSCake-Deduplicator"
    record = write_record(tmp_path, project, LAYERED_BLOBS)

    result = manager.run(DeduplicationStage(), record, tmp_path / "out")

    assert result.outcome is StageOutcome.REFUSED
    assert "may not be processed twice" in (result.message or "")
    assert not (tmp_path / "out").exists()


def test_inconsistent_result_is_not_written(tmp_path: Path, manager: StageManager) -> None:
    project = make_project(make_package(defaults=[license_fact("MIT", "LICENSE", "missing.txt")]))
    record = write_record(tmp_path, project, {"stray.txt": "unreferenced"})

    result = manager.run(DeduplicationStage(), record, tmp_path / "out")

    assert result.outcome is StageOutcome.INCONSISTENT
    assert result.violations == (
        "Archive entry referenced in the record is missing: missing.txt",
        "Archive entry is not referenced by any scope: stray.txt",
    )
    assert not (tmp_path / "out").exists()


def test_missing_record_or_archive_is_an_io_failure(tmp_path: Path, manager: StageManager) -> None:
    missing = manager.run(DeduplicationStage(), tmp_path / "nope.oscc", tmp_path / "out")
    assert missing.outcome is StageOutcome.IO_FAILURE

    record = write_record(tmp_path, _layered_project(), LAYERED_BLOBS)
    (tmp_path / "input.zip").unlink()
    without_archive = manager.run(DeduplicationStage(), record, tmp_path / "out")
    assert without_archive.outcome is StageOutcome.IO_FAILURE
    assert "Cannot unpack archive" in (without_archive.message or "")


def test_prefilled_issues_are_attached_at_the_configured_level(
    tmp_path: Path, repository: JsonRecordRepository, archives: ZipArchiveService
) -> None:
    record = write_record(tmp_path, _layered_project(), LAYERED_BLOBS)

    for level, expected in ((2, ["W01"]), (0, [])):
        issues = IssueTracker(phase=Phase.DEDUPLICATION)
        issues.warning("[Semantics] - File: dedup.yml: broken --> rule ignored")
        manager = StageManager(records=repository, archives=archives, issue_level=level)

        result = manager.run(DeduplicationStage(), record, tmp_path / f"out{level}", issues=issues)

        assert result.record_path is not None
        written = repository.load(result.record_path)
        assert [entry.id for entry in written.issues.warnings] == expected
        assert written.has_issues is bool(expected)


def test_validate_reports_consistency_without_writing(
    tmp_path: Path, manager: StageManager
) -> None:
    good = write_record(tmp_path, _layered_project(), LAYERED_BLOBS, stem="good")
    bad = write_record(tmp_path, _layered_project(), {"LICENSE": "MIT text"}, stem="bad")

    assert manager.validate(good).outcome is StageOutcome.SUCCESS
    result = manager.validate(bad)
    assert result.outcome is StageOutcome.INCONSISTENT
    assert result.violations == ("Archive entry referenced in the record is missing: a.js.MIT",)
    assert sorted(path.name for path in tmp_path.iterdir()) == [
        "bad.oscc",
        "bad.zip",
        "good.oscc",
        "good.zip",
    ]


def test_merge_writes_one_record_with_renamed_blobs(
    tmp_path: Path, manager: StageManager, repository: JsonRecordRepository
) -> None:
    first = write_record(tmp_path / "in", _layered_project(), LAYERED_BLOBS, stem="first")
    other = make_project(
        make_package("npm::right-pad:2.0.0", files=[make_file("COPYING", ["BSD-3-Clause"], texts=["COPYING"])]),
        cid="other",
    )
    second = write_record(tmp_path / "in", other, {"COPYING": "BSD text"}, stem="second")

    result = manager.merge([first, second], tmp_path / "out", MergeOptions(cid="combined"))

    assert result.outcome is StageOutcome.SUCCESS
    assert result.record_path == tmp_path / "out" / "merged.oscc"
    assert result.archive_path is not None
    assert set(read_archive(result.archive_path)) == {
        merged_blob_name("demo", "first.oscc", "LICENSE"),
        merged_blob_name("demo", "first.oscc", "a.js.MIT"),
        merged_blob_name("other", "second.oscc", "COPYING"),
    }
    merged = repository.load(result.record_path)
    assert merged.collection.cid == "combined"
    assert merged.collection.merged_ids == ["demo", "other"]
    assert len(merged.packages) == 2
    assert merged.config == {
        "merger": {
            "configFile": {
                "cid": "combined",
                "archiveName": "merged",
                "policy": "first-wins",
                "issueLevel": "2",
            }
        }
    }

"""Stage manager: unpack, run one stage, validate, write the result.

The input record and archive are never modified. Every run works on a scratch
copy of the archive and writes ``<stem>_<suffix>.oscc`` plus ``<stem>_<suffix>.zip``
only after the consistency check passed.
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import TYPE_CHECKING

from osccpipe.domain.archive import BlobStore
from osccpipe.domain.consistency import check_archive_consistency, validate_archive
from osccpipe.domain.errors import (
    ProcessingRefusedError,
    ReferentialIntegrityError,
    StageIOError,
)
from osccpipe.domain.issues import IssueTracker
from osccpipe.domain.model import Phase

from .base import StageContext
from .merge import MERGER_CONFIG_KEY, MergeInput, MergeOptions, merge_records

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from osccpipe.domain.model import Project
    from osccpipe.domain.ports import ArchiveService, RecordRepository

    from .base import Stage

log = logging.getLogger(__name__)

RECORD_EXTENSION = ".oscc"
ARCHIVE_EXTENSION = ".zip"


class StageOutcome(StrEnum):
    SUCCESS = "success"
    INCONSISTENT = "inconsistent"
    IO_FAILURE = "io-failure"
    REFUSED = "refused"


@dataclass(frozen=True, slots=True, kw_only=True)
class StageResult:
    outcome: StageOutcome
    record_path: Path | None = None
    archive_path: Path | None = None
    changed_packages: int = 0
    violations: tuple[str, ...] = ()
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is StageOutcome.SUCCESS


def check_author(project: Project, author: str) -> None:
    """Refuse records that this stage produced itself."""

    if project.collection.author == author:
        raise ProcessingRefusedError(
            f"Record was already processed by {author}; it may not be processed twice"
        )


def archive_location(record_path: Path, project: Project) -> Path:
    """Archive path of ``project`` resolved against the directory of its record."""

    return record_path.parent / project.collection.archive_path


def stamp_config(project: Project, key: str, settings: dict[str, str]) -> None:
    """Record the settings a stage ran with in the record's config block."""

    config = dict(project.config or {})
    config[key] = {"configFile": dict(settings)}
    project.config = config


def _now() -> str:
    return datetime.now().isoformat()


def _inconsistent(exc: ReferentialIntegrityError) -> StageResult:
    return StageResult(
        outcome=StageOutcome.INCONSISTENT, violations=exc.violations, message=str(exc)
    )


@dataclass(slots=True)
class StageManager:
    records: RecordRepository
    archives: ArchiveService
    issue_level: int = 2
    clock: Callable[[], str] = field(default=_now)

    def run(
        self,
        stage: Stage,
        record_path: Path,
        output_dir: Path,
        *,
        issues: IssueTracker | None = None,
    ) -> StageResult:
        """Run ``stage`` on ``record_path`` and write its output to ``output_dir``.

        ``issues`` may already hold findings from loading the stage's rules.
        """

        try:
            project = self.records.load(record_path)
            check_author(project, stage.author)
        except StageIOError as exc:
            log.error("%s", exc)
            return StageResult(outcome=StageOutcome.IO_FAILURE, message=str(exc))
        except ProcessingRefusedError as exc:
            log.error("%s", exc)
            return StageResult(outcome=StageOutcome.REFUSED, message=str(exc))

        log.info("Running %s on %s", stage.name, record_path)
        with TemporaryDirectory(prefix=f"osccpipe-{stage.name}-") as scratch:
            store = BlobStore(Path(scratch))
            tracker = issues if issues is not None else IssueTracker(phase=stage.phase)
            context = StageContext(store=store, issues=tracker)
            try:
                self.archives.unpack(archive_location(record_path, project), store.root)
                stage.run(project, context=context)
                stem = f"{record_path.stem}_{stage.suffix}"
                stamp_config(
                    project, stage.config_key, {**stage.settings(), "issueLevel": str(self.issue_level)}
                )
                result = self._write(project, store, tracker, output_dir, stem, stage.author)
            except ReferentialIntegrityError as exc:
                return _inconsistent(exc)
            except StageIOError as exc:
                log.error("%s", exc)
                return StageResult(outcome=StageOutcome.IO_FAILURE, message=str(exc))

        log.info(
            "%s changed %d package(s), released %d archive entries; result written to %s",
            stage.name,
            context.changed_packages,
            len(context.released_blobs),
            result.record_path,
        )
        return StageResult(
            outcome=result.outcome,
            record_path=result.record_path,
            archive_path=result.archive_path,
            changed_packages=context.changed_packages,
        )

    def merge(
        self, record_paths: Sequence[Path], output_dir: Path, options: MergeOptions
    ) -> StageResult:
        """Merge ``record_paths`` into ``<archive_name>.oscc`` plus ``<archive_name>.zip``."""

        tracker = IssueTracker(phase=Phase.MERGE)
        with ExitStack() as stack:
            try:
                inputs: list[MergeInput] = []
                for path in record_paths:
                    project = self.records.load(path)
                    scratch = stack.enter_context(TemporaryDirectory(prefix="osccpipe-merge-in-"))
                    store = BlobStore(Path(scratch))
                    self.archives.unpack(archive_location(path, project), store.root)
                    inputs.append(MergeInput(name=path.name, project=project, store=store))

                output = stack.enter_context(TemporaryDirectory(prefix="osccpipe-merge-"))
                target = BlobStore(Path(output))
                merged = merge_records(inputs, target, options=options, issues=tracker)
                stamp_config(
                    merged,
                    MERGER_CONFIG_KEY,
                    {**options.settings(), "issueLevel": str(self.issue_level)},
                )
                result = self._write(
                    merged, target, tracker, output_dir, options.archive_name, options.author
                )
            except ReferentialIntegrityError as exc:
                return _inconsistent(exc)
            except StageIOError as exc:
                log.error("%s", exc)
                return StageResult(outcome=StageOutcome.IO_FAILURE, message=str(exc))
        log.info("Number of processed oscc input files: %d", len(record_paths))
        return result

    def validate(self, record_path: Path) -> StageResult:
        """Check ``record_path`` against its archive without writing anything."""

        try:
            project = self.records.load(record_path)
            with TemporaryDirectory(prefix="osccpipe-validate-") as scratch:
                store = BlobStore(Path(scratch))
                self.archives.unpack(archive_location(record_path, project), store.root)
                violations = check_archive_consistency(project, store)
        except StageIOError as exc:
            log.error("%s", exc)
            return StageResult(outcome=StageOutcome.IO_FAILURE, message=str(exc))

        for violation in violations:
            log.error("%s", violation)
        if violations:
            return StageResult(outcome=StageOutcome.INCONSISTENT, violations=tuple(violations))
        log.info("%s is consistent with its archive", record_path)
        return StageResult(outcome=StageOutcome.SUCCESS, record_path=record_path)

    def _write(
        self,
        project: Project,
        store: BlobStore,
        tracker: IssueTracker,
        output_dir: Path,
        stem: str,
        author: str,
    ) -> StageResult:
        validate_archive(project, store, tracker)
        tracker.finalize(project, issue_level=self.issue_level)

        record_path = output_dir / f"{stem}{RECORD_EXTENSION}"
        archive_path = output_dir / f"{stem}{ARCHIVE_EXTENSION}"
        project.collection.archive_path = f"./{archive_path.name}"
        project.collection.author = author
        project.collection.date = self.clock()

        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StageIOError(f"Cannot create output directory {output_dir}: {exc}") from exc
        self.archives.pack(store.root, archive_path)
        self.records.save(project, record_path)
        return StageResult(
            outcome=StageOutcome.SUCCESS, record_path=record_path, archive_path=archive_path
        )

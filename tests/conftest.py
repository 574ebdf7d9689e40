from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from osccpipe.adapters.archive import ZipArchiveService
from osccpipe.adapters.oscc import JsonRecordRepository
from osccpipe.app import scope_patterns
from osccpipe.config import PipelineConfig
from osccpipe.domain.archive import BlobStore
from osccpipe.domain.issues import IssueTracker
from osccpipe.domain.model import Phase
from osccpipe.domain.stages import StageContext, StageManager
from tests.helpers.records import FIXED_DATE

if TYPE_CHECKING:
    from pathlib import Path

    from osccpipe.domain.stages import ScopePatterns


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("OSCCPIPE_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def patterns() -> ScopePatterns:
    return scope_patterns(PipelineConfig())


@pytest.fixture
def blob_store(tmp_path: Path) -> BlobStore:
    root = tmp_path / "work"
    root.mkdir()
    return BlobStore(root)


@pytest.fixture
def tracker() -> IssueTracker:
    return IssueTracker(phase=Phase.CURATION)


@pytest.fixture
def stage_context(blob_store: BlobStore, tracker: IssueTracker) -> StageContext:
    return StageContext(store=blob_store, issues=tracker)


@pytest.fixture
def repository() -> JsonRecordRepository:
    return JsonRecordRepository()


@pytest.fixture
def archives() -> ZipArchiveService:
    return ZipArchiveService()


@pytest.fixture
def manager(repository: JsonRecordRepository, archives: ZipArchiveService) -> StageManager:
    return StageManager(records=repository, archives=archives, clock=lambda: FIXED_DATE)

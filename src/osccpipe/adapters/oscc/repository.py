"""Read and write OSCC records on disk."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from osccpipe.domain.errors import StageIOError

from .schema import OsccDocument
from .translator import to_document, translate_document

if TYPE_CHECKING:
    from pathlib import Path

    from osccpipe.domain.model import Project

log = logging.getLogger(__name__)


class JsonRecordRepository:
    """Record repository backed by ``.oscc`` JSON files."""

    encoding = "utf-8"

    def load(self, path: Path) -> Project:
        try:
            raw = path.read_text(encoding=self.encoding)
        except OSError as exc:
            raise StageIOError(f"Cannot read record {path}: {exc}") from exc
        try:
            project = translate_document(OsccDocument.model_validate_json(raw))
        except ValidationError as exc:
            raise StageIOError(f"Record {path} is not a valid OSCC document: {exc}") from exc
        except ValueError as exc:
            raise StageIOError(f"Record {path} has invalid package coordinates: {exc}") from exc
        log.debug("Loaded %s with %d package(s)", path, len(project.packages))
        return project

    def save(self, project: Project, path: Path) -> None:
        try:
            path.write_text(to_document(project).to_json(), encoding=self.encoding)
        except OSError as exc:
            raise StageIOError(f"Cannot write record {path}: {exc}") from exc
        log.debug("Wrote %s", path)

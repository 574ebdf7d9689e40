"""Bidirectional check between record references and archive contents."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from osccpipe.domain.errors import ReferentialIntegrityError
from osccpipe.domain.model import SENTINEL_PATHS, Severity

if TYPE_CHECKING:
    from osccpipe.domain.archive import BlobStore
    from osccpipe.domain.issues import IssueSink
    from osccpipe.domain.model import Project

log = logging.getLogger(__name__)


def check_archive_consistency(project: Project, store: BlobStore) -> list[str]:
    """Return one message per violation; an empty list means record and archive agree.

    Every referenced path must exist in ``store``, and every file in ``store`` must
    be referenced by at least one scope.
    """

    referenced = {name for name in project.archive_references() if name not in SENTINEL_PATHS}
    present = store.names()
    violations = [
        f"Archive entry referenced in the record is missing: {name}"
        for name in sorted(referenced - present)
    ]
    violations.extend(
        f"Archive entry is not referenced by any scope: {name}" for name in sorted(present - referenced)
    )
    return violations


def validate_archive(project: Project, store: BlobStore, sink: IssueSink) -> None:
    """Report violations as project-level errors and raise if there are any."""

    violations = check_archive_consistency(project, store)
    if not violations:
        log.debug("Archive consistent with %s", store.root)
        return
    for violation in violations:
        sink.report(Severity.ERROR, violation)
    raise ReferentialIntegrityError(violations)

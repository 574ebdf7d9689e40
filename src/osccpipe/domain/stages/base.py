"""Stage contract and the per-run context handed to every stage."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from osccpipe.domain.archive import BlobStore
    from osccpipe.domain.issues import IssueTracker
    from osccpipe.domain.model import Phase, Project


@dataclass(slots=True)
class StageContext:
    """Per-run collaborators handed to every stage."""

    store: BlobStore
    issues: IssueTracker
    changed_packages: int = 0
    released_blobs: list[str] = field(default_factory=list[str])


class Stage(Protocol):
    """Contract implemented by each record transformation.

    ``settings`` are the effective options of a run; they are written into the
    record's config block under ``config_key``.
    """

    name: str
    phase: Phase
    author: str
    suffix: str
    config_key: str

    def settings(self) -> dict[str, str]: ...

    def run(self, project: Project, *, context: StageContext) -> None: ...


def flag(value: bool) -> str:
    return "true" if value else "false"

"""Issue lists attached to record scopes."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .enums import Severity

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

_SEQUENTIAL_ID = re.compile(r"^(?:[A-Za-z]+_)?[IWE](\d+)$")


@dataclass(slots=True)
class IssueEntry:
    id: str
    message: str


@dataclass(slots=True)
class IssueList:
    infos: list[IssueEntry] = field(default_factory=list["IssueEntry"])
    warnings: list[IssueEntry] = field(default_factory=list["IssueEntry"])
    errors: list[IssueEntry] = field(default_factory=list["IssueEntry"])

    def entries(self, severity: Severity) -> list[IssueEntry]:
        if severity is Severity.INFO:
            return self.infos
        if severity is Severity.WARNING:
            return self.warnings
        return self.errors

    def __iter__(self) -> Iterator[tuple[Severity, IssueEntry]]:
        for severity in Severity:
            for entry in self.entries(severity):
                yield severity, entry

    def is_empty(self) -> bool:
        return not (self.infos or self.warnings or self.errors)

    def has_errors(self) -> bool:
        return bool(self.errors)

    def next_number(self, severity: Severity) -> int:
        """Return the next free sequential number for ``severity``.

        Ids carrying a package suffix (``E_npm::x:1``) do not take part in numbering.
        """

        numbers = [
            int(match.group(1))
            for entry in self.entries(severity)
            if (match := _SEQUENTIAL_ID.match(entry.id)) is not None
        ]
        return max(numbers, default=0) + 1

    def apply_level(self, issue_level: int) -> None:
        """Drop entries below the configured issue level (-1 clears everything)."""

        if issue_level < 2:
            self.infos.clear()
        if issue_level < 1:
            self.warnings.clear()
        if issue_level < 0:
            self.errors.clear()

    def remove_matching(self, patterns: Iterable[str]) -> list[str]:
        """Remove entries whose id matches one of ``patterns`` (``W*``/``E*`` wildcards)."""

        wanted = tuple(patterns)
        removed: list[str] = []
        for severity in (Severity.WARNING, Severity.ERROR, Severity.INFO):
            keep: list[IssueEntry] = []
            for entry in self.entries(severity):
                if any(_issue_matches(pattern, entry.id) for pattern in wanted):
                    removed.append(entry.id)
                else:
                    keep.append(entry)
            self.entries(severity)[:] = keep
        return removed

    def clear_blocking(self) -> list[str]:
        """Remove warnings and errors, returning their ids."""

        removed = [entry.id for entry in (*self.warnings, *self.errors)]
        self.warnings.clear()
        self.errors.clear()
        return removed


def _issue_matches(pattern: str, issue_id: str) -> bool:
    if pattern.endswith("*"):
        return issue_id.startswith(pattern[:-1])
    return pattern == issue_id

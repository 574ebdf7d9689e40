"""Issue tracker: the logging sink threaded through every stage.

Stages report findings while they run; :meth:`IssueTracker.finalize` then numbers
them per owner, attaches them to the record, applies the configured issue level
and recomputes the ``has_issues`` flags bottom-up.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from osccpipe.domain.model import IssueEntry, Phase, Severity

if TYPE_CHECKING:
    from osccpipe.domain.model import Identifier, IssueList, LicenseFact, Package, Project

log = logging.getLogger(__name__)

_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}
_PHASE_PREFIX = {Phase.CURATION: "Cur_"}


class IssueSink(Protocol):
    """Anything stages can report findings to."""

    def report(
        self,
        severity: Severity,
        message: str,
        *,
        package: Identifier | None = None,
        reference: LicenseFact | None = None,
    ) -> None: ...


@dataclass(slots=True, frozen=True)
class Issue:
    severity: Severity
    message: str
    phase: Phase
    package: Identifier | None = None
    reference: LicenseFact | None = None


@dataclass(slots=True)
class IssueTracker:
    """Collects issues for one run of one stage."""

    phase: Phase
    issues: list[Issue] = field(default_factory=list["Issue"])

    def report(
        self,
        severity: Severity,
        message: str,
        *,
        package: Identifier | None = None,
        reference: LicenseFact | None = None,
    ) -> None:
        self.issues.append(
            Issue(
                severity=severity,
                message=message,
                phase=self.phase,
                package=package,
                reference=reference,
            )
        )
        if package is None:
            log.log(_LOG_LEVELS[severity], "[%s] %s", self.phase, message)
        else:
            log.log(_LOG_LEVELS[severity], "[%s] %s: %s", self.phase, package, message)

    def info(self, message: str, *, package: Identifier | None = None) -> None:
        self.report(Severity.INFO, message, package=package)

    def warning(
        self,
        message: str,
        *,
        package: Identifier | None = None,
        reference: LicenseFact | None = None,
    ) -> None:
        self.report(Severity.WARNING, message, package=package, reference=reference)

    def error(
        self,
        message: str,
        *,
        package: Identifier | None = None,
        reference: LicenseFact | None = None,
    ) -> None:
        self.report(Severity.ERROR, message, package=package, reference=reference)

    def count(self, severity: Severity) -> int:
        return sum(1 for issue in self.issues if issue.severity is severity)

    def has_errors(self) -> bool:
        return any(issue.severity is Severity.ERROR for issue in self.issues)

    def finalize(self, project: Project, *, issue_level: int) -> None:
        """Attach collected issues to ``project`` and refresh its flags."""

        apply_issue_level(project, issue_level)
        _attach(project, self.issues, issue_level)
        apply_issue_flags(project, issue_flags(project))


@dataclass(slots=True, frozen=True)
class IssueFlags:
    project: bool
    packages: dict[Identifier, bool]
    facts: dict[int, bool]


def issue_flags(project: Project) -> IssueFlags:
    """Compute ``has_issues`` for every container without mutating the record."""

    facts: dict[int, bool] = {}
    packages: dict[Identifier, bool] = {}
    for package in project.packages:
        package_flag = not package.issues.is_empty()
        for fact in package.license_facts():
            fact_flag = not fact.issues.is_empty()
            facts[id(fact)] = fact_flag
            package_flag = package_flag or fact_flag
        packages[package.identifier] = package_flag
    project_flag = not project.issues.is_empty() or any(packages.values())
    return IssueFlags(project=project_flag, packages=packages, facts=facts)


def apply_issue_flags(project: Project, flags: IssueFlags) -> None:
    project.has_issues = flags.project
    for package in project.packages:
        package.has_issues = flags.packages.get(package.identifier, False)
        for fact in package.license_facts():
            fact.has_issues = flags.facts.get(id(fact), False)


def apply_issue_level(project: Project, issue_level: int) -> None:
    """Filter every issue list of the record to ``issue_level``."""

    project.issues.apply_level(issue_level)
    for package in project.packages:
        package.issues.apply_level(issue_level)
        for fact in package.license_facts():
            fact.issues.apply_level(issue_level)


def _level_allows(severity: Severity, issue_level: int) -> bool:
    if severity is Severity.INFO:
        return issue_level > 1
    if severity is Severity.WARNING:
        return issue_level > 0
    return issue_level > -1


@dataclass(slots=True)
class _Counter:
    next_numbers: dict[Severity, int]

    @classmethod
    def starting_after(cls, issue_list: IssueList) -> _Counter:
        return cls(next_numbers={severity: issue_list.next_number(severity) for severity in Severity})

    def take(self, severity: Severity, phase: Phase) -> str:
        number = self.next_numbers[severity]
        self.next_numbers[severity] = number + 1
        return f"{_PHASE_PREFIX.get(phase, '')}{severity.prefix}{number:02d}"


def _attach(project: Project, issues: list[Issue], issue_level: int) -> None:
    packages: dict[Identifier, Package] = {package.identifier: package for package in project.packages}
    counters: dict[Identifier | None, _Counter] = {None: _Counter.starting_after(project.issues)}

    for issue in issues:
        if not _level_allows(issue.severity, issue_level):
            continue
        if issue.package is None:
            entry_id = counters[None].take(issue.severity, issue.phase)
            project.issues.entries(issue.severity).append(IssueEntry(id=entry_id, message=issue.message))
            continue

        package = packages.get(issue.package)
        if package is None:
            entry_id = f"{issue.severity.prefix}_{issue.package.coordinates}"
            project.issues.entries(issue.severity).append(IssueEntry(id=entry_id, message=issue.message))
            continue

        counter = counters.get(package.identifier)
        if counter is None:
            counter = _Counter.starting_after(package.issues)
            counters[package.identifier] = counter
        entry = IssueEntry(id=counter.take(issue.severity, issue.phase), message=issue.message)
        target = issue.reference.issues if _is_attached(package, issue.reference) else package.issues
        target.entries(issue.severity).append(entry)


def _is_attached(package: Package, reference: LicenseFact | None) -> bool:
    if reference is None:
        return False
    return any(fact is reference for fact in package.license_facts())

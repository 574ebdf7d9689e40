from __future__ import annotations

import logging

import pytest

from osccpipe.domain.issues import IssueTracker
from osccpipe.domain.model import Identifier, IssueEntry, Phase, Severity
from tests.helpers.records import license_fact, make_package, make_project


def test_finalize_numbers_issues_per_owner_after_existing_ids() -> None:
    fact = license_fact("MIT", "LICENSE")
    package = make_package(defaults=[fact])
    package.issues.warnings.append(IssueEntry(id="W01", message="older"))
    project = make_project(package)
    tracker = IssueTracker(phase=Phase.DEDUPLICATION)

    tracker.warning("first", package=package.identifier)
    tracker.report(Severity.WARNING, "on the fact", package=package.identifier, reference=fact)
    tracker.info("project wide")
    tracker.finalize(project, issue_level=2)

    assert [entry.id for entry in package.issues.warnings] == ["W01", "W02"]
    assert [(entry.id, entry.message) for entry in fact.issues.warnings] == [("W03", "on the fact")]
    assert [entry.id for entry in project.issues.infos] == ["I01"]


def test_finalize_attaches_issues_of_unknown_packages_to_the_project() -> None:
    project = make_project(make_package())
    tracker = IssueTracker(phase=Phase.MERGE)

    tracker.error("gone", package=Identifier.parse("npm::missing:2.0.0"))
    tracker.finalize(project, issue_level=2)

    assert [entry.id for entry in project.issues.errors] == ["E_npm::missing:2.0.0"]


def test_curation_issues_carry_a_phase_prefix() -> None:
    package = make_package()
    project = make_project(package)
    tracker = IssueTracker(phase=Phase.CURATION)

    tracker.info("curated", package=package.identifier)
    tracker.finalize(project, issue_level=2)

    assert [entry.id for entry in package.issues.infos] == ["Cur_I01"]


def test_finalize_filters_existing_and_new_issues_by_level() -> None:
    package = make_package()
    package.issues.warnings.append(IssueEntry(id="W01", message="older"))
    project = make_project(package)
    tracker = IssueTracker(phase=Phase.SELECTION)

    tracker.warning("dropped", package=package.identifier)
    tracker.error("kept", package=package.identifier)
    tracker.finalize(project, issue_level=0)

    assert package.issues.warnings == []
    assert [entry.id for entry in package.issues.errors] == ["E01"]


def test_has_issues_flags_propagate_upwards() -> None:
    fact = license_fact("MIT", "LICENSE")
    quiet = make_package("npm::quiet:1.0.0")
    noisy = make_package(defaults=[fact])
    project = make_project(quiet, noisy)
    tracker = IssueTracker(phase=Phase.RESOLUTION)

    tracker.report(Severity.ERROR, "broken", package=noisy.identifier, reference=fact)
    tracker.finalize(project, issue_level=2)

    assert fact.has_issues
    assert noisy.has_issues
    assert not quiet.has_issues
    assert project.has_issues

    tracker = IssueTracker(phase=Phase.RESOLUTION)
    tracker.finalize(project, issue_level=-1)

    assert not fact.has_issues
    assert not noisy.has_issues
    assert not project.has_issues


def test_reported_issues_are_logged(caplog: pytest.LogCaptureFixture) -> None:
    tracker = IssueTracker(phase=Phase.DEDUPLICATION)

    with caplog.at_level(logging.WARNING, logger="osccpipe.domain.issues"):
        tracker.warning("careful", package=Identifier.parse("npm::left-pad:1.0.0"))

    assert "[deduplication] npm::left-pad:1.0.0: careful" in caplog.text
    assert tracker.count(Severity.WARNING) == 1
    assert not tracker.has_errors()

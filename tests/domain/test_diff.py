from __future__ import annotations

from osccpipe.domain.diff import compare_records
from osccpipe.domain.model import DistributionType
from tests.helpers.records import LEFT_PAD, license_fact, make_file, make_package, make_project


def test_identical_records_have_no_differences() -> None:
    package = make_package(files=[make_file("a.js", ["MIT"])])

    assert compare_records(make_project(package), make_project(package)) == []


def test_packages_added_and_removed_come_first() -> None:
    left = make_project(make_package(), make_package("npm::gone:1.0.0"))
    right = make_project(make_package(), make_package("npm::new:1.0.0"))

    assert compare_records(left, right) == [
        "npm::gone:1.0.0: package removed",
        "npm::new:1.0.0: package added",
    ]


def test_fact_changes_are_listed_per_scope() -> None:
    left = make_project(
        make_package(
            files=[make_file("a.js", ["MIT", "Apache-2.0"]), make_file("b.js", ["MIT"])],
            defaults=[license_fact("MIT", "LICENSE")],
        )
    )
    right = make_project(
        make_package(
            files=[make_file("a.js", ["MIT OR Apache-2.0"])],
            defaults=[license_fact("MIT", "LICENSE")],
            distribution=DistributionType.DEV,
        )
    )

    assert compare_records(left, right) == [
        f"{LEFT_PAD}: distribution None -> DEV",
        f"{LEFT_PAD}: file <a.js> licenses ['Apache-2.0', 'MIT'] -> ['MIT OR Apache-2.0']",
        f"{LEFT_PAD}: file <b.js> licenses ['MIT'] -> []",
    ]


def test_license_order_does_not_count_as_a_difference() -> None:
    left = make_project(make_package(files=[make_file("a.js", ["MIT", "BSD-3-Clause"])]))
    right = make_project(make_package(files=[make_file("a.js", ["BSD-3-Clause", "MIT"])]))

    assert compare_records(left, right) == []

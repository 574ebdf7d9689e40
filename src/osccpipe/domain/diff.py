"""Human-readable differences between two compliance records."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from osccpipe.domain.model import Package, Project


def compare_records(left: Project, right: Project) -> list[str]:
    """List what changed from ``left`` to ``right``; empty when both carry the same facts."""

    differences: list[str] = []
    left_packages = {package.identifier: package for package in left.packages}
    right_packages = {package.identifier: package for package in right.packages}

    for identifier in sorted(left_packages.keys() - right_packages.keys()):
        differences.append(f"{identifier}: package removed")
    for identifier in sorted(right_packages.keys() - left_packages.keys()):
        differences.append(f"{identifier}: package added")
    for identifier in sorted(left_packages.keys() & right_packages.keys()):
        differences.extend(
            f"{identifier}: {line}"
            for line in _compare_packages(left_packages[identifier], right_packages[identifier])
        )
    return differences


def _compare_packages(left: Package, right: Package) -> list[str]:
    lines: list[str] = []
    if left.distribution != right.distribution:
        lines.append(f"distribution {left.distribution} -> {right.distribution}")
    if left.package_type != right.package_type:
        lines.append(f"package type {left.package_type} -> {right.package_type}")

    _compare_values(
        lines,
        "default licenses",
        (fact.license for fact in left.default_licenses),
        (fact.license for fact in right.default_licenses),
    )
    _compare_values(
        lines,
        "default copyrights",
        (fact.copyright for fact in left.default_copyrights),
        (fact.copyright for fact in right.default_copyrights),
    )

    left_dirs = {item.scope: item for item in left.dir_licensings}
    right_dirs = {item.scope: item for item in right.dir_licensings}
    for scope in sorted(left_dirs.keys() | right_dirs.keys()):
        before, after = left_dirs.get(scope), right_dirs.get(scope)
        _compare_values(
            lines,
            f"dir <{scope}> licenses",
            (fact.license for fact in before.licenses) if before else (),
            (fact.license for fact in after.licenses) if after else (),
        )
        _compare_values(
            lines,
            f"dir <{scope}> copyrights",
            (fact.copyright for fact in before.copyrights) if before else (),
            (fact.copyright for fact in after.copyrights) if after else (),
        )

    left_files = {item.scope: item for item in left.file_licensings}
    right_files = {item.scope: item for item in right.file_licensings}
    for scope in sorted(left_files.keys() | right_files.keys()):
        before, after = left_files.get(scope), right_files.get(scope)
        _compare_values(
            lines,
            f"file <{scope}> licenses",
            before.license_values() if before else (),
            after.license_values() if after else (),
        )
        _compare_values(
            lines,
            f"file <{scope}> copyrights",
            (item.copyright for item in before.copyrights) if before else (),
            (item.copyright for item in after.copyrights) if after else (),
        )

    _compare_values(lines, "unified copyrights", left.unified_copyrights or (), right.unified_copyrights or ())
    return lines


def _compare_values(
    lines: list[str], label: str, before: Iterable[str | None], after: Iterable[str | None]
) -> None:
    old = sorted(str(value) for value in before)
    new = sorted(str(value) for value in after)
    if old != new:
        lines.append(f"{label} {old} -> {new}")

from __future__ import annotations

from osccpipe.domain.model import DirLicensing, ScopeLevel
from osccpipe.domain.scopes import (
    best_matching_dir,
    dir_scope_path,
    fits_in_scopes,
    is_within,
    parent_dir,
    scope_level,
    strip_package_root,
)
from tests.helpers.records import make_package

LICENSE_PATTERNS = ("license*", "copying*")


def test_is_within_respects_segment_boundaries() -> None:
    assert is_within("lib/a.js", "lib")
    assert is_within("lib/sub/a.js", "lib/")
    assert is_within("lib", "lib")
    assert not is_within("library/a.js", "lib")
    assert is_within("anything/at/all", "")


def test_best_matching_dir_prefers_the_closest_scope() -> None:
    package = make_package()
    package.dir_licensings = [DirLicensing(scope="lib"), DirLicensing(scope="lib/sub")]

    closest = best_matching_dir(package, "lib/sub/a.js")

    assert closest is not None
    assert closest.scope == "lib/sub"
    assert best_matching_dir(package, "src/a.js") is None
    assert best_matching_dir(package, "") is None


def test_parent_dir_skips_the_scope_itself() -> None:
    package = make_package()
    outer, inner = DirLicensing(scope="lib"), DirLicensing(scope="lib/sub")
    package.dir_licensings = [outer, inner]

    assert parent_dir(package, inner) is outer
    assert parent_dir(package, outer) is None


def test_dir_scope_path_and_root_stripping() -> None:
    package = make_package(source_root="pkg")

    assert dir_scope_path(package, "pkg/lib/LICENSE") == "lib"
    assert dir_scope_path(package, "LICENSE") == ""
    assert dir_scope_path(package, "lib\\sub\\COPYING") == "lib/sub"
    assert strip_package_root(package, "pkg/lib/a.js") == "lib/a.js"


def test_scope_level_classifies_license_files() -> None:
    package = make_package()

    assert scope_level(package, "LICENSE.txt", LICENSE_PATTERNS) is ScopeLevel.DEFAULT
    assert scope_level(package, "lib/COPYING", LICENSE_PATTERNS) is ScopeLevel.DIR
    assert scope_level(package, "lib/index.js", LICENSE_PATTERNS) is ScopeLevel.FILE
    assert scope_level(package, "LICENSE", ("license*",), lowercase=False) is ScopeLevel.FILE


def test_fits_in_scopes_treats_blank_as_everywhere() -> None:
    assert fits_in_scopes("lib/a.js", [""])
    assert fits_in_scopes("lib/a.js", ["src", "lib"])
    assert not fits_in_scopes("lib/a.js", ["src"])

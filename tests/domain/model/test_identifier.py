from __future__ import annotations

import pytest

from osccpipe.domain.model import Identifier


def test_parse_fills_missing_trailing_parts() -> None:
    identifier = Identifier.parse("npm::left-pad")

    assert identifier == Identifier(type="npm", namespace="", name="left-pad", version="")
    assert identifier.coordinates == "npm::left-pad:"


def test_parse_keeps_colons_inside_the_version() -> None:
    identifier = Identifier.parse("Maven:org.example:lib:[1.0,2.0]")

    assert identifier.version == "[1.0,2.0]"
    assert str(identifier) == "Maven:org.example:lib:[1.0,2.0]"


def test_parse_rejects_short_coordinates() -> None:
    with pytest.raises(ValueError, match="Invalid package coordinates"):
        Identifier.parse("npm:left-pad")


def test_to_path_replaces_blank_segments() -> None:
    assert Identifier.parse("npm::left-pad:1.0.0").to_path("%") == "npm%unknown%left-pad%1.0.0"

"""Ivy-style version ranges used by rule identifiers.

Supported forms: ``[1.0,2.0]``, ``[1.0,2.0[``, ``]1.0,2.0]``, ``]1.0,2.0[``,
``(1.0,2.0)``, open ends such as ``[1.0,)`` or ``(,2.0]`` and sub-revision
prefixes such as ``1.0.+``.
"""

from __future__ import annotations

import re
from functools import total_ordering
from typing import Final

_SEGMENT_SPLIT = re.compile(r"[.\-_+]")
_RANGE = re.compile(r"^([\[\]()])\s*([^,]*?)\s*,\s*([^,]*?)\s*([\[\]()])$")
_INCLUSIVE_LOWER: Final[str] = "["
_INCLUSIVE_UPPER: Final[str] = "]"


@total_ordering
class Version:
    """Segment-wise comparable version (``1.0`` equals ``1.0.0``)."""

    __slots__ = ("raw", "segments")

    def __init__(self, raw: str) -> None:
        self.raw = raw
        segments = [segment for segment in _SEGMENT_SPLIT.split(raw.strip()) if segment]
        while segments and segments[-1] == "0":
            segments.pop()
        self.segments: tuple[tuple[int, int | str], ...] = tuple(
            (0, int(segment)) if segment.isdigit() else (1, segment) for segment in segments
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.segments == other.segments

    def __lt__(self, other: Version) -> bool:
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self.segments)

    def _key(self) -> tuple[tuple[int, str], ...]:
        # numeric segments sort before textual ones at the same position
        return tuple((kind, f"{value:020d}" if kind == 0 else str(value)) for kind, value in self.segments)

    def __repr__(self) -> str:
        return f"Version({self.raw!r})"


def is_range(expression: str) -> bool:
    stripped = expression.strip()
    return bool(_RANGE.match(stripped)) or stripped.endswith("+")


def matches(expression: str, version: str) -> bool:
    """Return True if ``version`` satisfies the Ivy ``expression``; malformed ranges never match."""

    stripped = expression.strip()
    if stripped.endswith("+"):
        return version.strip().startswith(stripped[:-1])

    match = _RANGE.match(stripped)
    if match is None:
        return False
    opening, lower, upper, closing = match.groups()
    if not lower and not upper:
        return False
    candidate = Version(version)

    if lower:
        lower_bound = Version(lower)
        if opening == _INCLUSIVE_LOWER:
            if candidate < lower_bound:
                return False
        elif candidate <= lower_bound:
            return False
    elif opening != "(":
        return False

    if upper:
        upper_bound = Version(upper)
        if closing == _INCLUSIVE_UPPER:
            if candidate > upper_bound:
                return False
        elif candidate >= upper_bound:
            return False
    elif closing != ")":
        return False

    return True

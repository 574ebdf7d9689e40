"""License expression helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

OR_OPERATOR: Final[str] = " OR "
AND_OPERATOR: Final[str] = " AND "


def _strip_parentheses(expression: str) -> str:
    stripped = expression.strip()
    while _is_enclosed(stripped):
        stripped = stripped[1:-1].strip()
    return stripped


def _is_enclosed(expression: str) -> bool:
    """True if the opening parenthesis at the start closes at the very end."""

    if not (expression.startswith("(") and expression.endswith(")")):
        return False
    depth = 0
    for index, char in enumerate(expression):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return index == len(expression) - 1
    return False


@dataclass(frozen=True, slots=True)
class CompoundOrLicense:
    """A choice among licenses (``A OR B``); operand order does not matter."""

    operands: frozenset[str]

    @classmethod
    def parse(cls, expression: str | None) -> CompoundOrLicense:
        if expression is None:
            return cls(operands=frozenset())
        parts = (_strip_parentheses(part) for part in _strip_parentheses(expression).split(OR_OPERATOR))
        return cls(operands=frozenset(part for part in parts if part))

    @property
    def is_compound(self) -> bool:
        return len(self.operands) > 1

    def __contains__(self, license_id: object) -> bool:
        return license_id in self.operands

    def __str__(self) -> str:
        return OR_OPERATOR.join(sorted(self.operands))


def contains_and(expression: str | None) -> bool:
    return expression is not None and "AND" in expression.split()


def contains_or(expression: str | None) -> bool:
    return expression is not None and "OR" in expression.split()

"""Rule catalog: validated rules of one kind plus package matching."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from osccpipe.domain.errors import AmbiguousRuleError, RuleValidationError
from osccpipe.domain.model import Severity

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from osccpipe.domain.issues import IssueSink
    from osccpipe.domain.model import Identifier

    from .base import Rule

log = logging.getLogger(__name__)

type RuleValidator[T] = Callable[[Rule[T]], None]
type CatalogValidator[T] = Callable[[Sequence[Rule[T]]], Iterable[tuple[Rule[T], str]]]


@dataclass(slots=True)
class RuleCatalog[T]:
    rules: list[Rule[T]] = field(default_factory=list)
    sink: IssueSink | None = None

    @classmethod
    def build(
        cls,
        candidates: Iterable[Rule[T]],
        *,
        validate: RuleValidator[T] | None = None,
        validate_all: CatalogValidator[T] | None = None,
        sink: IssueSink | None = None,
    ) -> RuleCatalog[T]:
        """Validate ``candidates`` and keep the ones that pass.

        ``validate`` checks one rule at a time; ``validate_all`` sees the surviving
        rules together and yields ``(rule, reason)`` pairs for rules that conflict
        with others. Rejected rules are reported as warnings, never raised.
        """

        accepted: list[Rule[T]] = []
        for rule in candidates:
            try:
                if validate is not None:
                    validate(rule)
            except RuleValidationError as exc:
                _reject(rule, str(exc), sink)
                continue
            accepted.append(rule)

        if validate_all is not None:
            rejected: dict[int, Rule[T]] = {}
            for rule, reason in validate_all(accepted):
                if id(rule) not in rejected:
                    rejected[id(rule)] = rule
                    _reject(rule, reason, sink)
            accepted = [rule for rule in accepted if id(rule) not in rejected]

        log.info("Loaded %d rule(s)", len(accepted))
        return cls(rules=accepted, sink=sink)

    def __len__(self) -> int:
        return len(self.rules)

    def add(self, rule: Rule[T]) -> None:
        self.rules.append(rule)

    def lookup(self, identifier: Identifier) -> Rule[T] | None:
        """Return the single matching rule; raise if several match."""

        found = [rule for rule in self.rules if rule.matches(identifier)]
        if len(found) > 1:
            raise AmbiguousRuleError(identifier, [rule.describe() for rule in found])
        return found[0] if found else None

    def match(self, identifier: Identifier) -> Rule[T] | None:
        """Like :meth:`lookup`, but ambiguity is reported as an error and yields ``None``."""

        try:
            return self.lookup(identifier)
        except AmbiguousRuleError as exc:
            if self.sink is not None:
                self.sink.report(Severity.ERROR, str(exc), package=identifier)
            else:
                log.error("%s", exc)
            return None


def _reject[T](rule: Rule[T], reason: str, sink: IssueSink | None) -> None:
    message = f"[Semantics] - File: {rule.describe()}: {reason} --> rule ignored"
    if sink is not None:
        sink.report(Severity.WARNING, message)
    else:
        log.warning("%s", message)

"""Error taxonomy shared by the pipeline stages."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from osccpipe.domain.model import Identifier


class RuleValidationError(ValueError):
    """A rule failed its semantic checks and is excluded from the catalog."""


class AmbiguousRuleError(LookupError):
    """More than one rule matches the same package."""

    def __init__(self, identifier: Identifier, origins: Sequence[str]) -> None:
        joined = ", ".join(origins)
        super().__init__(f"Ambiguous rules for {identifier}: {joined}")
        self.identifier = identifier
        self.origins = tuple(origins)


class ReferentialIntegrityError(RuntimeError):
    """Record references and archive contents disagree."""

    def __init__(self, violations: Sequence[str]) -> None:
        super().__init__(f"{len(violations)} archive consistency violation(s)")
        self.violations = tuple(violations)


class StageIOError(OSError):
    """Reading or writing records, archives or rule files failed."""


class ProcessingRefusedError(RuntimeError):
    """The input record must not be processed by this stage."""


class UnsupportedExpressionWarning(UserWarning):
    """A license expression containing ``AND`` cannot be resolved automatically."""

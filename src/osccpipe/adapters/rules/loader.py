"""Load rule files from a directory and turn them into domain rules.

Every ``*.yml``/``*.yaml`` file below the directory holds a list of rule objects.
Files are read in sorted path order. An entry that fails the schema is reported
as a warning and skipped; an unreadable file aborts the load.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import ValidationError

from osccpipe.domain.errors import StageIOError
from osccpipe.domain.model import Identifier, Severity
from osccpipe.domain.rules import Rule, RuleKind
from osccpipe.domain.stages.curation import (
    CopyrightCuration,
    CurationPayload,
    LicenseCuration,
    ScopeCuration,
)
from osccpipe.domain.stages.metadata import Transition
from osccpipe.domain.stages.resolution import ResolverBlock, ResolverPayload
from osccpipe.domain.stages.selection import SelectorChoice, SelectorPayload

from .schema import (
    CurationRuleModel,
    MetadataRuleModel,
    ResolverRuleModel,
    RuleBaseModel,
    SelectorRuleModel,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence
    from pathlib import Path

    from osccpipe.domain.issues import IssueSink

log = getLogger(__name__)

TEMPLATE_FILE_NAME = "template.yml.tmp"
RULE_SUFFIXES = (".yml", ".yaml")


def rule_files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        raise StageIOError(f"Rule directory {directory} does not exist")
    return sorted(
        path
        for path in directory.rglob("*")
        if path.is_file() and path.suffix in RULE_SUFFIXES and path.name != TEMPLATE_FILE_NAME
    )


def load_curation_rules(directory: Path, *, sink: IssueSink | None = None) -> list[Rule[CurationPayload]]:
    return _load(directory, CurationRuleModel, _curation_rules, sink)


def load_resolver_rules(directory: Path, *, sink: IssueSink | None = None) -> list[Rule[ResolverPayload]]:
    return _load(directory, ResolverRuleModel, _resolver_rules, sink)


def load_selector_rules(directory: Path, *, sink: IssueSink | None = None) -> list[Rule[SelectorPayload]]:
    return _load(directory, SelectorRuleModel, _selector_rules, sink)


def load_metadata_rules(
    directory: Path, *, sink: IssueSink | None = None
) -> tuple[list[Rule[Transition]], list[Rule[Transition]]]:
    """Return ``(distribution_rules, package_type_rules)``."""

    rules = _load(directory, MetadataRuleModel, _metadata_rules, sink)
    distributions = [rule for rule in rules if rule.kind is RuleKind.DISTRIBUTION]
    package_types = [rule for rule in rules if rule.kind is RuleKind.PACKAGE_TYPE]
    return distributions, package_types


def _load[TModel: RuleBaseModel, TPayload](
    directory: Path,
    model: type[TModel],
    convert: Callable[[TModel, Identifier, str], list[Rule[TPayload]]],
    sink: IssueSink | None,
) -> list[Rule[TPayload]]:
    rules: list[Rule[TPayload]] = []
    for origin, entry in _entries(directory, sink):
        try:
            parsed = model.model_validate(entry)
            identifier = Identifier.parse(parsed.id)
        except ValidationError as exc:
            _reject(origin, _summarize(exc), sink)
            continue
        except ValueError as exc:
            _reject(origin, str(exc), sink)
            continue
        rules.extend(convert(parsed, identifier, origin))
    log.debug("Read %d rule(s) from %s", len(rules), directory)
    return rules


def _entries(directory: Path, sink: IssueSink | None) -> Iterator[tuple[str, Any]]:
    for path in rule_files(directory):
        origin = path.relative_to(directory).as_posix()
        try:
            content = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise StageIOError(f"Cannot read rule file {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            _reject(origin, f"invalid YAML: {exc}", sink)
            continue
        if content is None:
            continue
        if not isinstance(content, list):
            _reject(origin, "a rule file must contain a list of rules", sink)
            continue
        for entry in content:
            yield origin, entry


def _reject(origin: str, reason: str, sink: IssueSink | None) -> None:
    message = f"[Semantics] - File: {origin}: {reason} --> rule ignored"
    if sink is not None:
        sink.report(Severity.WARNING, message)
    else:
        log.warning("%s", message)


def _summarize(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
        for error in exc.errors()
    )


def _curation_rules(
    model: CurationRuleModel, identifier: Identifier, origin: str
) -> list[Rule[CurationPayload]]:
    payload = CurationPayload(
        package_modifier=model.package_modifier,
        curations=tuple(
            ScopeCuration(
                file_scope=item.file_scope,
                licenses=tuple(
                    LicenseCuration(
                        modifier=entry.modifier,
                        license=entry.license,
                        license_text_in_archive=entry.license_text_in_archive,
                    )
                    for entry in item.file_licenses or ()
                ),
                copyrights=tuple(
                    CopyrightCuration(modifier=entry.modifier, copyright=entry.copyright)
                    for entry in item.file_copyrights or ()
                ),
            )
            for item in model.curations or ()
        ),
        resolved_issues=tuple(model.resolved_issues or ()),
        repository=model.repository or "",
        source_root=model.source_root or "",
        comment=model.comment,
    )
    return [Rule(kind=RuleKind.CURATION, identifier=identifier, origin=origin, payload=payload)]


def _resolver_rules(
    model: ResolverRuleModel, identifier: Identifier, origin: str
) -> list[Rule[ResolverPayload]]:
    payload = ResolverPayload(
        blocks=tuple(
            ResolverBlock(
                licenses=tuple(block.licenses),
                result=block.result,
                scopes=tuple(block.scopes),
            )
            for block in model.blocks
        )
    )
    return [Rule(kind=RuleKind.RESOLVER, identifier=identifier, origin=origin, payload=payload)]


def _selector_rules(
    model: SelectorRuleModel, identifier: Identifier, origin: str
) -> list[Rule[SelectorPayload]]:
    payload = SelectorPayload(
        choices=tuple(
            SelectorChoice(specified=choice.specified, selected=choice.selected)
            for choice in model.choices
        )
    )
    return [Rule(kind=RuleKind.SELECTOR, identifier=identifier, origin=origin, payload=payload)]


def _metadata_rules(
    model: MetadataRuleModel, identifier: Identifier, origin: str
) -> list[Rule[Transition]]:
    rules: list[Rule[Transition]] = []
    if model.distribution is not None:
        rules.append(
            Rule(
                kind=RuleKind.DISTRIBUTION,
                identifier=identifier,
                origin=origin,
                payload=Transition(
                    source=model.distribution.source.upper(),
                    target=model.distribution.target.upper(),
                ),
            )
        )
    if model.package_type is not None:
        rules.append(
            Rule(
                kind=RuleKind.PACKAGE_TYPE,
                identifier=identifier,
                origin=origin,
                payload=Transition(
                    source=model.package_type.source.upper(),
                    target=model.package_type.target.upper(),
                ),
            )
        )
    return rules


def write_resolver_template(directory: Path, rules: Sequence[Rule[ResolverPayload]]) -> Path:
    """Write ``rules`` as a resolver rule file skeleton named ``template.yml.tmp``."""

    document = [
        {
            "id": rule.identifier.coordinates,
            "blocks": [
                {
                    "licenses": list(block.licenses),
                    "result": block.result,
                    "scopes": list(block.scopes),
                }
                for block in rule.payload.blocks
            ],
        }
        for rule in rules
    ]
    target = directory / TEMPLATE_FILE_NAME
    try:
        directory.mkdir(parents=True, exist_ok=True)
        target.write_text(yaml.safe_dump(document, sort_keys=False, allow_unicode=True), encoding="utf-8")
    except OSError as exc:
        raise StageIOError(f"Cannot write resolver template {target}: {exc}") from exc
    log.info("Resolver template with %d package(s) written to %s", len(rules), target)
    return target

"""Application orchestration entry points."""

from __future__ import annotations

from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from osccpipe.adapters.archive import ZipArchiveService
from osccpipe.adapters.declared import DeclaredLicenseClient
from osccpipe.adapters.oscc import JsonRecordRepository
from osccpipe.adapters.rules import (
    load_curation_rules,
    load_metadata_rules,
    load_resolver_rules,
    load_selector_rules,
    write_resolver_template,
)
from osccpipe.config import get_http_source_config, get_pipeline_config
from osccpipe.domain.diff import compare_records
from osccpipe.domain.errors import StageIOError
from osccpipe.domain.issues import IssueTracker
from osccpipe.domain.model import Phase
from osccpipe.domain.rules import RuleCatalog
from osccpipe.domain.stages import (
    CollisionPolicy,
    CurationStage,
    DeduplicationOptions,
    DeduplicationStage,
    MergeOptions,
    MetadataStage,
    ResolutionStage,
    ScopePatterns,
    SelectionStage,
    StageManager,
    StageOutcome,
    StageResult,
    curation_validator,
    find_conflicting_resolver_rules,
    validate_distribution_rule,
    validate_package_type_rule,
    validate_resolver_rule,
    validate_selector_rule,
)
from osccpipe.domain.stages.manager import RECORD_EXTENSION

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from osccpipe.config import PipelineConfig
    from osccpipe.domain.model import Identifier
    from osccpipe.domain.stages import DeclaredLicenses, Stage

type StageFactory = Callable[[IssueTracker], Stage]


log = getLogger(__name__)


def build_stage_manager(config: PipelineConfig) -> StageManager:
    return StageManager(
        records=JsonRecordRepository(),
        archives=ZipArchiveService(),
        issue_level=config.issue_level,
    )


def scope_patterns(config: PipelineConfig) -> ScopePatterns:
    return ScopePatterns(
        licenses=config.scopes.license_patterns,
        copyrights=config.scopes.copyright_patterns,
        lowercase=config.scopes.lowercase,
    )


def _run_stage(
    phase: Phase,
    factory: StageFactory,
    record: Path,
    output_dir: Path,
    *,
    config: PipelineConfig,
    manager: StageManager | None,
) -> StageResult:
    effective_manager = manager or build_stage_manager(config)
    tracker = IssueTracker(phase=phase)
    try:
        stage = factory(tracker)
    except StageIOError as exc:
        log.error("%s", exc)
        return StageResult(outcome=StageOutcome.IO_FAILURE, message=str(exc))
    result = effective_manager.run(stage, record, output_dir, issues=tracker)
    log.info("Finished %s: outcome=%s, changed=%s", stage.name, result.outcome, result.changed_packages)
    return result


def curate(
    record: Path,
    rules_dir: Path,
    output_dir: Path,
    *,
    config: PipelineConfig | None = None,
    manager: StageManager | None = None,
) -> StageResult:
    """Apply the curation rules found in ``rules_dir`` to ``record``."""

    effective_config = config or get_pipeline_config()
    file_store = effective_config.curation.file_store

    def build(tracker: IssueTracker) -> CurationStage:
        catalog = RuleCatalog.build(
            load_curation_rules(rules_dir, sink=tracker),
            validate=curation_validator(file_store),
            sink=tracker,
        )
        return CurationStage(
            catalog=catalog, patterns=scope_patterns(effective_config), file_store=file_store
        )

    return _run_stage(
        Phase.CURATION, build, record, output_dir, config=effective_config, manager=manager
    )


def deduplicate(
    record: Path,
    output_dir: Path,
    *,
    config: PipelineConfig | None = None,
    manager: StageManager | None = None,
) -> StageResult:
    """Remove facts implied by an enclosing scope."""

    effective_config = config or get_pipeline_config()
    settings = effective_config.deduplication
    options = DeduplicationOptions(
        keep_empty_scopes=settings.keep_empty_scopes,
        create_unified_copyrights=settings.create_unified_copyrights,
        preserve_file_scopes=settings.preserve_file_scopes,
        compare_only_distinct=settings.compare_only_distinct,
        process_packages_with_issues=settings.process_packages_with_issues,
    )

    def build(_tracker: IssueTracker) -> DeduplicationStage:
        return DeduplicationStage(options=options)

    return _run_stage(
        Phase.DEDUPLICATION, build, record, output_dir, config=effective_config, manager=manager
    )


def resolve(
    record: Path,
    rules_dir: Path,
    output_dir: Path,
    *,
    config: PipelineConfig | None = None,
    manager: StageManager | None = None,
    declared_client: DeclaredLicenseClient | None = None,
) -> StageResult:
    """Resolve dual-licensed file scopes with the resolver rules in ``rules_dir``."""

    effective_config = config or get_pipeline_config()
    settings = effective_config.resolution

    def build(tracker: IssueTracker) -> ResolutionStage:
        catalog = RuleCatalog.build(
            load_resolver_rules(rules_dir, sink=tracker),
            validate=validate_resolver_rule,
            validate_all=find_conflicting_resolver_rules,
            sink=tracker,
        )
        declared: dict[Identifier, DeclaredLicenses] = {}
        if settings.declared_source:
            client = declared_client or DeclaredLicenseClient(config=get_http_source_config())
            declared = client.load(settings.declared_source)
        return ResolutionStage(
            catalog=catalog,
            patterns=scope_patterns(effective_config),
            declared=declared,
            any_subset=settings.any_subset,
            template_writer=(
                partial(write_resolver_template, rules_dir) if settings.generate_template else None
            ),
        )

    return _run_stage(
        Phase.RESOLUTION, build, record, output_dir, config=effective_config, manager=manager
    )


def select(
    record: Path,
    rules_dir: Path,
    output_dir: Path,
    *,
    config: PipelineConfig | None = None,
    manager: StageManager | None = None,
) -> StageResult:
    """Pick one license out of every compound OR license the selector rules cover."""

    effective_config = config or get_pipeline_config()

    def build(tracker: IssueTracker) -> SelectionStage:
        catalog = RuleCatalog.build(
            load_selector_rules(rules_dir, sink=tracker),
            validate=validate_selector_rule,
            sink=tracker,
        )
        return SelectionStage(catalog=catalog, patterns=scope_patterns(effective_config))

    return _run_stage(
        Phase.SELECTION, build, record, output_dir, config=effective_config, manager=manager
    )


def update_metadata(
    record: Path,
    rules_dir: Path,
    output_dir: Path,
    *,
    config: PipelineConfig | None = None,
    manager: StageManager | None = None,
) -> StageResult:
    """Change package distribution and package type as the metadata rules say."""

    effective_config = config or get_pipeline_config()

    def build(tracker: IssueTracker) -> MetadataStage:
        distributions, package_types = load_metadata_rules(rules_dir, sink=tracker)
        return MetadataStage(
            distributions=RuleCatalog.build(
                distributions, validate=validate_distribution_rule, sink=tracker
            ),
            package_types=RuleCatalog.build(
                package_types, validate=validate_package_type_rule, sink=tracker
            ),
            ignore_from_checks=effective_config.metadata.ignore_from_checks,
        )

    return _run_stage(
        Phase.METADATA, build, record, output_dir, config=effective_config, manager=manager
    )


def merge_directory(
    input_dir: Path,
    output_dir: Path,
    *,
    config: PipelineConfig | None = None,
    manager: StageManager | None = None,
) -> StageResult:
    """Merge every record in ``input_dir`` into one record and archive."""

    effective_config = config or get_pipeline_config()
    effective_manager = manager or build_stage_manager(effective_config)
    record_paths = sorted(input_dir.glob(f"*{RECORD_EXTENSION}"))
    if not record_paths:
        message = f"No {RECORD_EXTENSION} files found in {input_dir}"
        log.error("%s", message)
        return StageResult(outcome=StageOutcome.IO_FAILURE, message=message)

    options = MergeOptions(
        cid=effective_config.merge.cid,
        archive_name=effective_config.merge.archive_name,
        policy=CollisionPolicy(effective_config.merge.policy),
    )
    log.info(
        "Starting merge: inputs=%d, policy=%s, cid=%s", len(record_paths), options.policy, options.cid
    )
    return effective_manager.merge(record_paths, output_dir, options)


def validate_record(
    record: Path,
    *,
    config: PipelineConfig | None = None,
    manager: StageManager | None = None,
) -> StageResult:
    """Check that ``record`` and its archive reference each other consistently."""

    effective_manager = manager or build_stage_manager(config or get_pipeline_config())
    return effective_manager.validate(record)


def diff_records(
    left: Path, right: Path, *, repository: JsonRecordRepository | None = None
) -> list[str]:
    """Differences between the facts of two records, in package order."""

    records = repository or JsonRecordRepository()
    return compare_records(records.load(left), records.load(right))

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from osccpipe.app import (
    curate,
    deduplicate,
    diff_records,
    merge_directory,
    resolve,
    select,
    update_metadata,
    validate_record,
)
from osccpipe.config import (
    MERGE_POLICIES,
    ConfigurationError,
    configure_logging,
    get_pipeline_config,
    validate_issue_level,
    validate_merge_policy,
)
from osccpipe.domain.stages import StageOutcome

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from osccpipe.config import PipelineConfig
    from osccpipe.domain.stages import StageResult

log = logging.getLogger(__name__)

EXIT_CODES: dict[StageOutcome, int] = {
    StageOutcome.SUCCESS: 0,
    StageOutcome.REFUSED: 2,
    StageOutcome.INCONSISTENT: 3,
    StageOutcome.IO_FAILURE: 4,
}


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Transform OSCC compliance records")
    subparsers = parser.add_subparsers(dest="command", required=True)

    source = argparse.ArgumentParser(add_help=False)
    source.add_argument(
        "--input",
        type=Path,
        required=True,
        help="Input .oscc record (or directory of records for merge)",
    )
    source.add_argument(
        "--issue-level",
        type=int,
        help="-1 drops all issues, 0 keeps errors, 1 adds warnings, 2 keeps everything",
    )
    source.add_argument("--verbose", action="store_true", help="Log debug output")

    output = argparse.ArgumentParser(add_help=False)
    output.add_argument(
        "--output-dir",
        type=Path,
        help="Directory for the result files (defaults to the input's directory)",
    )

    rules = argparse.ArgumentParser(add_help=False)
    rules.add_argument("--rules", type=Path, required=True, help="Directory holding the rule files")

    curation = subparsers.add_parser(
        "curate", parents=[source, output, rules], help="Apply curation rules"
    )
    curation.add_argument(
        "--file-store",
        type=Path,
        help="Directory holding license texts referenced by curations",
    )

    dedup = subparsers.add_parser(
        "deduplicate", parents=[source, output], help="Remove facts implied by enclosing scopes"
    )
    dedup.add_argument(
        "--keep-empty-scopes",
        action=argparse.BooleanOptionalAction,
        help="Keep file scopes left without facts that still hold their content blob",
    )
    dedup.add_argument(
        "--unified-copyrights",
        action=argparse.BooleanOptionalAction,
        help="Collect all copyrights of a package into one list",
    )
    dedup.add_argument(
        "--preserve-file-scopes",
        action=argparse.BooleanOptionalAction,
        help="Keep file facts that an enclosing scope already covers",
    )
    dedup.add_argument(
        "--process-packages-with-issues",
        action=argparse.BooleanOptionalAction,
        help="Also deduplicate packages carrying error issues",
    )

    resolution = subparsers.add_parser(
        "resolve", parents=[source, output, rules], help="Resolve dual-licensed files"
    )
    resolution.add_argument(
        "--any-subset",
        action=argparse.BooleanOptionalAction,
        help="Also resolve files whose licenses are a subset of a rule's license set",
    )
    resolution.add_argument(
        "--generate-template",
        action=argparse.BooleanOptionalAction,
        help="Write template.yml.tmp with the unresolved packages into the rule directory",
    )
    resolution.add_argument(
        "--declared",
        type=str,
        help="Path or http(s) URL of the declared-license document",
    )

    subparsers.add_parser(
        "select", parents=[source, output, rules], help="Select licenses out of OR expressions"
    )

    metadata = subparsers.add_parser(
        "metadata", parents=[source, output, rules], help="Change distribution and package type"
    )
    metadata.add_argument(
        "--ignore-from-checks",
        action=argparse.BooleanOptionalAction,
        help="Apply rules even when their 'from' value does not match",
    )

    merge = subparsers.add_parser(
        "merge", parents=[source, output], help="Merge all records of a directory"
    )
    merge.add_argument("--policy", choices=MERGE_POLICIES, help="Package collision policy")
    merge.add_argument("--cid", type=str, help="Collection id of the merged record")
    merge.add_argument("--archive-name", type=str, help="File stem of the merged record and archive")

    subparsers.add_parser(
        "validate", parents=[source], help="Check a record against its archive"
    )

    diff = subparsers.add_parser("diff", parents=[source], help="Compare two records")
    diff.add_argument("--against", type=Path, required=True, help="Record to compare with")

    return parser.parse_args(list(argv))


def _build_config(args: argparse.Namespace) -> PipelineConfig:
    config = get_pipeline_config()
    if args.issue_level is not None:
        config = replace(config, issue_level=validate_issue_level(args.issue_level))

    if args.command == "curate" and args.file_store is not None:
        config = replace(config, curation=replace(config.curation, file_store=args.file_store))
    elif args.command == "deduplicate":
        overrides = {
            "keep_empty_scopes": args.keep_empty_scopes,
            "create_unified_copyrights": args.unified_copyrights,
            "preserve_file_scopes": args.preserve_file_scopes,
            "process_packages_with_issues": args.process_packages_with_issues,
        }
        config = replace(config, deduplication=_override(config.deduplication, overrides))
    elif args.command == "resolve":
        overrides = {
            "any_subset": args.any_subset,
            "generate_template": args.generate_template,
            "declared_source": args.declared,
        }
        config = replace(config, resolution=_override(config.resolution, overrides))
    elif args.command == "metadata":
        overrides = {"ignore_from_checks": args.ignore_from_checks}
        config = replace(config, metadata=_override(config.metadata, overrides))
    elif args.command == "merge":
        overrides = {
            "policy": validate_merge_policy(args.policy) if args.policy else None,
            "cid": args.cid,
            "archive_name": args.archive_name,
        }
        config = replace(config, merge=_override(config.merge, overrides))
    return config


def _override[T](settings: T, values: dict[str, object]) -> T:
    given = {key: value for key, value in values.items() if value is not None}
    return replace(settings, **given) if given else settings  # type: ignore[type-var]


def _output_dir(args: argparse.Namespace) -> Path:
    if args.output_dir is not None:
        return args.output_dir
    return args.input if args.command == "merge" else args.input.parent


def _run_command(args: argparse.Namespace, config: PipelineConfig) -> StageResult | None:
    if args.command == "curate":
        return curate(args.input, args.rules, _output_dir(args), config=config)
    if args.command == "deduplicate":
        return deduplicate(args.input, _output_dir(args), config=config)
    if args.command == "resolve":
        return resolve(args.input, args.rules, _output_dir(args), config=config)
    if args.command == "select":
        return select(args.input, args.rules, _output_dir(args), config=config)
    if args.command == "metadata":
        return update_metadata(args.input, args.rules, _output_dir(args), config=config)
    if args.command == "merge":
        return merge_directory(args.input, _output_dir(args), config=config)
    if args.command == "validate":
        return validate_record(args.input, config=config)
    if args.command == "diff":
        differences = diff_records(args.input, args.against)
        for line in differences:
            print(line)  # noqa: T201
        log.info("%d difference(s) between %s and %s", len(differences), args.input, args.against)
        return None
    raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        config = _build_config(parsed_args)
    except (ValueError, ConfigurationError) as exc:
        log.error("CLI validation error: %s", exc)  # noqa: TRY400
        sys.exit(2)

    if parsed_args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        result = _run_command(parsed_args, config)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)

    if result is None:
        return
    code = EXIT_CODES[result.outcome]
    if code:
        detail = result.message or "; ".join(result.violations)
        log.error("%s failed (%s): %s", parsed_args.command, result.outcome, detail)
        sys.exit(code)
    if result.record_path is not None:
        log.info("Result written to %s", result.record_path)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def entrypoint() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    entrypoint()

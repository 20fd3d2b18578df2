"""CLI entrypoints for lean-intel commands."""

from __future__ import annotations

import argparse
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Sequence

import yaml

from .config import ConfigError
from .errors import GitError, InventoryError, ProviderError, UnsupportedProviderError
from .logging import configure_logging
from .models import GenerationResult
from .orchestrator import DEFAULT_ANALYZERS
from .pipeline import Pipeline, RunOutcome, UpdateOutcome
from .prompting.builder import ASSISTANT_FILES
from .providers.base import SUPPORTED_PROVIDERS
from .tiers import SIZE_MODE_ORDER, TIER_ORDER

_EXPECTED_ERRORS = (
    ConfigError,
    GitError,
    InventoryError,
    ProviderError,
    UnsupportedProviderError,
)


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Increase log verbosity for troubleshooting.",
    )


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    _add_verbose_option(parser, suppress_default=True)
    parser.add_argument(
        "--path",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )
    parser.add_argument(
        "--skip-cache",
        action="store_true",
        help="Ignore cached completions and inventory for this run.",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Maximum number of completion calls in flight.",
    )
    parser.add_argument(
        "--tier",
        choices=TIER_ORDER,
        default=None,
        help="Override the detected documentation tier.",
    )
    parser.add_argument(
        "--provider",
        choices=SUPPORTED_PROVIDERS,
        default=None,
        help="Completion provider to use.",
    )
    parser.add_argument("--model", default=None, help="Model name for the selected provider.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lean-intel",
        description="Generate verified project documentation and analysis reports.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write a DEBUG-level log of the run to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    detect_parser = subparsers.add_parser("detect", help="Print the detected project context.")
    _add_common_options(detect_parser)

    docs_parser = subparsers.add_parser("docs", help="Generate the documentation set into docs/.")
    _add_common_options(docs_parser)

    update_parser = subparsers.add_parser(
        "update",
        help="Regenerate documentation made stale by commits since the last generation.",
    )
    _add_common_options(update_parser)
    update_parser.add_argument(
        "--since",
        default=None,
        help="Commit to diff against instead of the last recorded generation.",
    )
    update_parser.add_argument(
        "--force",
        action="store_true",
        help="Act on a full-regeneration recommendation instead of only reporting it.",
    )

    full_parser = subparsers.add_parser(
        "full",
        help="Documentation, AI assistant context, summary and analyzer reports.",
    )
    _add_common_options(full_parser)
    for kind in DEFAULT_ANALYZERS:
        full_parser.add_argument(
            f"--skip-{kind}",
            action="store_true",
            help=f"Skip the {kind} analyzer.",
        )
    full_parser.add_argument("--hipaa", action="store_true", help="Also run the HIPAA analyzer.")

    summary_parser = subparsers.add_parser("summary", help="Write an executive SUMMARY.md.")
    _add_common_options(summary_parser)

    helper_parser = subparsers.add_parser(
        "ai-helper",
        help="Generate a context file for an AI coding assistant.",
    )
    _add_common_options(helper_parser)
    helper_parser.add_argument(
        "--assistant",
        choices=sorted(ASSISTANT_FILES),
        default=None,
        help="Assistant to target (defaults to the project's configured assistant).",
    )
    helper_parser.add_argument(
        "--size-mode",
        choices=SIZE_MODE_ORDER,
        default=None,
        help="Override the output size budget.",
    )

    return parser


def selected_analyzers(args: argparse.Namespace) -> List[str]:
    selection = [kind for kind in DEFAULT_ANALYZERS if not getattr(args, f"skip_{kind}", False)]
    if getattr(args, "hipaa", False):
        selection.append("hipaa")
    return selection


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for lean-intel commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(getattr(args, "verbose", False)), log_file=args.log_file)

    try:
        pipeline = Pipeline(
            args.path,
            provider_name=args.provider,
            model=args.model,
            tier=args.tier,
            concurrency=args.concurrency,
            skip_cache=bool(args.skip_cache),
        )
        failed = _dispatch(pipeline, args)
    except _EXPECTED_ERRORS as exc:
        parser.exit(1, f"lean-intel {args.command} failed: {exc}\n")
    except Exception as exc:  # pragma: no cover - defensive guard
        parser.exit(
            1,
            f"lean-intel {args.command} failed: {exc}\nRun with --verbose for more details.\n",
        )
    if failed:
        parser.exit(1, f"lean-intel {args.command} failed. Run with --verbose for more details.\n")


def _dispatch(pipeline: Pipeline, args: argparse.Namespace) -> bool:
    """Run the chosen command; returns True when the command produced nothing usable."""
    if args.command == "detect":
        project = pipeline.detect()
        print(yaml.safe_dump(asdict(project), sort_keys=False).rstrip())
        return False
    if args.command == "docs":
        return _report_run(pipeline.run_docs(), pipeline.root)
    if args.command == "update":
        return _report_update(pipeline.run_update(since=args.since, force=bool(args.force)), pipeline.root)
    if args.command == "summary":
        return _report_run(pipeline.run_summary(), pipeline.root)
    if args.command == "ai-helper":
        outcome = pipeline.run_ai_helper(assistant=args.assistant, size_mode=args.size_mode)
        _report_validation(outcome.result)
        return _report_run(outcome, pipeline.root)
    if args.command == "full":
        full = pipeline.run_full(selected_analyzers(args))
        runs = [full.docs, full.assistant, full.summary, *full.analyzers]
        failures = [_report_run(run, pipeline.root) for run in runs]
        _report_validation(full.assistant.result)
        _print_totals(full.results)
        return all(failures)
    raise ValueError(f"Unknown command: {args.command}")  # pragma: no cover - argparse enforces choices


def _report_run(outcome: RunOutcome, root: Path) -> bool:
    result = outcome.result
    for path in outcome.written:
        print(f"Wrote {_relativize(path, root)}")
    if result.status == "error":
        print(f"{result.name}: failed ({result.error})", file=sys.stderr)
        return True
    if result.status == "skipped":
        print(f"{result.name}: skipped ({result.error})")
        return False
    missing = len(result.requested) - len(result.files)
    if missing > 0:
        print(f"{result.name}: {missing} of {len(result.requested)} file(s) failed ({result.error})", file=sys.stderr)
    print(f"{result.name}: {len(result.files)} file(s), {result.tokens_used} tokens, ${result.cost:.4f}")
    return False


def _report_update(update: UpdateOutcome, root: Path) -> bool:
    summary = update.summary
    print(
        f"{summary.total} file(s) changed since {update.base_commit[:7]}: "
        f"{summary.added} added, {summary.modified} modified, "
        f"{summary.deleted} deleted, {summary.renamed} renamed"
    )
    print(f"Impact: {update.impact}")
    if update.advice.should:
        action = "regenerated everything" if update.full_regenerated else "re-run with --force to act on it"
        print(f"Full regeneration recommended: {update.advice.reason} ({action})")
    if update.outcome is None:
        if update.advice.should:
            print("Nothing regenerated; the baseline commit is unchanged")
        elif not update.docs_to_update:
            print("Documentation is up to date")
        return False
    return _report_run(update.outcome, root)


def _report_validation(result: GenerationResult) -> None:
    validation = result.metadata.get("validation")
    if validation is None:
        return
    if result.metadata.get("auto_fixed"):
        print("Repaired fabricated imports against the codebase inventory")
    for issue in validation.issues:
        location = f" (line {issue.line})" if issue.line else ""
        print(f"  [{issue.severity}] {issue.message}{location}")


def _print_totals(results: Sequence[GenerationResult]) -> None:
    cost = sum(result.cost for result in results)
    tokens = sum(result.tokens_used for result in results)
    print(f"Total: {tokens} tokens, ${cost:.4f}")


def _relativize(path: Path, root: Path) -> str:
    try:
        return str(path.relative_to(root))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])

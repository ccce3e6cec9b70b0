#!/usr/bin/env python3
"""
PR Triage - Main Entry Point

Reviews the changed lines of GitHub pull requests with a catalog of
line-scoped rules, resolves trivial merge conflicts, posts a verdict and
optionally fixes and merges.

Usage:
    python -m pr_triage.main review --repo owner/repo --pr-number 123
    python -m pr_triage.main sweep --repo owner/repo
    python -m pr_triage.main analyze src/app.js --diff change.patch
    python -m pr_triage.main fix src/app.js
    python -m pr_triage.main resolve src/app.js

Or via GitHub Actions with GITHUB_REPOSITORY, PR_NUMBER and GITHUB_TOKEN set.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path, PurePosixPath
from typing import Set

from .analysis import CodeAnalyzer, ConflictResolver, resolve
from .config import ReviewConfig
from .models import ReviewState, ReviewResult
from .orchestrator import ReviewOrchestrator
from .orchestrator.report import render_conflict_summary
from .tools import GitHubTool, parse_changed_lines, parse_pr_diff
from .utils import setup_logging, get_logger, calculate_scores, format_scores_report

# Exit status when a file or PR has conflicts that need a human
EXIT_UNRESOLVED = 2


def _config_from_args(args) -> ReviewConfig:
    """Environment config with CLI flags layered on top."""
    config = ReviewConfig.from_env()

    if getattr(args, "repo", None):
        config.repo = args.repo
    if getattr(args, "pr_number", None):
        config.pr_number = args.pr_number
    if getattr(args, "auto_merge", False):
        config.auto_merge = True
    if getattr(args, "auto_fix", False):
        config.auto_fix = True
    if getattr(args, "strict", False):
        config.strict_mode = True
    if getattr(args, "merge_method", None):
        config.merge_method = args.merge_method
    if getattr(args, "report_low", False):
        config.report_low = True
    return config


def _print_result(result: ReviewResult) -> None:
    print("\n=== Review Results ===")
    if result.pull_request:
        print(f"PR #{result.pull_request.number}: {result.pull_request.title}")
    print(f"State: {result.state.value}")
    print(f"Issues found: {result.issues_found} ({result.critical_issues} high severity)")
    if result.event:
        print(f"Verdict: {result.event.value}{'' if result.review_posted else ' (not posted)'}")
    for report in result.conflicts:
        status = "resolved" if report.can_auto_resolve else "UNRESOLVED"
        print(f"Conflicts in {report.filename}: {len(report.sections)} sections, {status}")
    if result.has_unresolved_conflicts:
        print()
        print(render_conflict_summary(result.conflicts))
    if result.fix_report:
        print(f"Fixes: {result.fix_report.applied} applied, {result.fix_report.skipped} skipped "
              f"in {len(result.fix_report.fixed_files)} files")
    if result.merge:
        print(f"Merged: {result.merge.commit_sha}")
    if result.issue_number:
        print(f"Tracking issue: #{result.issue_number}")


def cmd_review(args):
    """Handle 'review' subcommand."""
    setup_logging(level=logging.DEBUG if args.debug else logging.INFO)
    logger = get_logger()

    config = _config_from_args(args)

    # Validate
    if not config.repo:
        logger.error("Repository required. Use --repo or set GITHUB_REPOSITORY env var")
        sys.exit(1)
    if not config.pr_number:
        logger.error("PR number required. Use --pr-number or set PR_NUMBER env var")
        sys.exit(1)

    try:
        owner, name = config.owner_and_name
        github = GitHubTool(token=config.github_token)
        orchestrator = ReviewOrchestrator(github, config=config)
        result = asyncio.run(orchestrator.review_pull_request(owner, name, config.pr_number))
    except Exception as e:
        logger.exception(f"Review failed: {e}")
        sys.exit(1)

    _print_result(result)
    sys.exit(EXIT_UNRESOLVED if result.state == ReviewState.ABORT_CONFLICT else 0)


def cmd_sweep(args):
    """Handle 'sweep' subcommand."""
    setup_logging(level=logging.DEBUG if args.debug else logging.INFO)
    logger = get_logger()

    config = _config_from_args(args)
    if not config.repo:
        logger.error("Repository required. Use --repo or set GITHUB_REPOSITORY env var")
        sys.exit(1)
    if args.paths:
        config.sweep_paths = args.paths

    try:
        owner, name = config.owner_and_name
        github = GitHubTool(token=config.github_token)
        orchestrator = ReviewOrchestrator(github, config=config)
        result = asyncio.run(orchestrator.review_repository_sweep(owner, name))
    except Exception as e:
        logger.exception(f"Sweep failed: {e}")
        sys.exit(1)

    _print_result(result)
    sys.exit(0)


def _read(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def _changed_lines_for(diff_text: str, path: str) -> Set[int]:
    """
    Changed lines of ``path`` in a patch.

    A multi-file git diff is split per file and matched on the path's
    trailing components; a bare single-file patch applies as a whole.
    """
    diffs = parse_pr_diff(diff_text)
    if not diffs:
        return parse_changed_lines(diff_text)

    target = PurePosixPath(Path(path).as_posix())
    for file_diff in diffs:
        if file_diff.is_deleted:
            continue
        candidate = PurePosixPath(file_diff.new_path)
        if target.parts[-len(candidate.parts):] == candidate.parts:
            return parse_changed_lines(file_diff.patch)
    return set()


def cmd_analyze(args):
    """Handle 'analyze' subcommand: local file, whole or diff-scoped."""
    setup_logging(level=logging.DEBUG if args.debug else logging.WARNING)
    config = _config_from_args(args)
    analyzer = CodeAnalyzer(config=config)

    content = _read(args.file)
    if args.diff:
        changed = _changed_lines_for(_read(args.diff), args.file)
        result = analyzer.analyze_changed_lines(content, args.file, args.language, changed)
    else:
        result = analyzer.analyze(content, args.file, args.language)

    for issue in result.issues:
        fix = " [fixable]" if issue.has_fix else ""
        print(f"{issue.file}:{issue.line}: {issue.severity} {issue.rule}: {issue.message}{fix}")

    print(f"\n{len(result.issues)} issues, complexity {result.metrics.complexity}, "
          f"maintainability {result.metrics.maintainability}")
    if result.issues:
        print(format_scores_report(calculate_scores(result.issues)))
    if result.has_conflicts:
        print(f"Conflict markers at lines {result.conflict.marker_lines}")
    sys.exit(0)


def cmd_fix(args):
    """Handle 'fix' subcommand: apply suggested fixes to a local file."""
    setup_logging(level=logging.DEBUG if args.debug else logging.INFO)
    config = _config_from_args(args)
    analyzer = CodeAnalyzer(config=config)

    content = _read(args.file)
    result = analyzer.analyze(content, args.file, args.language)
    fix = analyzer.apply_fixes(content, result.issues)

    if args.dry_run:
        print(fix.content)
    elif fix.changed:
        Path(args.file).write_text(fix.content, encoding="utf-8")

    print(f"{fix.applied} fixes applied, {fix.skipped} skipped", file=sys.stderr)
    sys.exit(0)


def cmd_resolve(args):
    """Handle 'resolve' subcommand: resolve conflict markers in a local file."""
    setup_logging(level=logging.DEBUG if args.debug else logging.INFO)
    logger = get_logger()

    content = _read(args.file)
    resolver = ConflictResolver()
    report = resolver.check(content, args.file)

    if not report.has_conflicts:
        logger.info(f"No conflicts in {args.file}")
        sys.exit(0)

    resolved = resolve(content, args.file) if args.force else resolver.try_resolve(content, args.file)
    if resolved is None:
        logger.error(
            f"{args.file}: {len(report.sections)} conflict sections need manual resolution "
            f"(markers at lines {report.marker_lines}); use --force to keep both sides"
        )
        sys.exit(EXIT_UNRESOLVED)

    Path(args.file).write_text(resolved, encoding="utf-8")
    logger.info(f"Resolved {len(report.sections)} conflict sections in {args.file}")
    sys.exit(0)


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Diff-aware pull request triage for GitHub"
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # review command
    review_parser = subparsers.add_parser("review", help="Review a pull request")
    review_parser.add_argument("--repo", type=str, help="Repository in format owner/repo")
    review_parser.add_argument("--pr-number", type=int, help="Pull request number")
    review_parser.add_argument(
        "--auto-merge",
        action="store_true",
        help="Merge when no high severity or security issue is found"
    )
    review_parser.add_argument(
        "--auto-fix",
        action="store_true",
        help="Commit suggested fixes to the PR branch after reviewing"
    )
    review_parser.add_argument(
        "--strict",
        action="store_true",
        help="Medium severity issues also block auto-merge"
    )
    review_parser.add_argument(
        "--merge-method",
        choices=["merge", "squash", "rebase"],
        help="Merge method for auto-merge (default: merge)"
    )
    review_parser.add_argument("--report-low", action="store_true", help="Also report low severity issues")
    review_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    # sweep command
    sweep_parser = subparsers.add_parser("sweep", help="Scan well-known files and open a tracking issue")
    sweep_parser.add_argument("--repo", type=str, help="Repository in format owner/repo")
    sweep_parser.add_argument("--paths", nargs="+", help="Paths to scan instead of the defaults")
    sweep_parser.add_argument("--report-low", action="store_true", help="Also report low severity issues")
    sweep_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    # analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Analyze a local file")
    analyze_parser.add_argument("file", help="File to analyze")
    analyze_parser.add_argument("--diff", help="Unified diff; only its added lines are reported")
    analyze_parser.add_argument("--language", help="Override language detection")
    analyze_parser.add_argument("--report-low", action="store_true", help="Also report low severity issues")
    analyze_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    # fix command
    fix_parser = subparsers.add_parser("fix", help="Apply suggested fixes to a local file")
    fix_parser.add_argument("file", help="File to fix in place")
    fix_parser.add_argument("--language", help="Override language detection")
    fix_parser.add_argument("--report-low", action="store_true", help="Also apply fixes for low severity issues")
    fix_parser.add_argument("--dry-run", action="store_true", help="Print the fixed content instead of writing")
    fix_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    # resolve command
    resolve_parser = subparsers.add_parser("resolve", help="Resolve merge conflict markers in a local file")
    resolve_parser.add_argument("file", help="File with conflict markers")
    resolve_parser.add_argument(
        "--force",
        action="store_true",
        help="Also merge sections that are not auto-resolvable, keeping both sides"
    )
    resolve_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    if args.command == "review":
        cmd_review(args)
    elif args.command == "sweep":
        cmd_sweep(args)
    elif args.command == "analyze":
        cmd_analyze(args)
    elif args.command == "fix":
        cmd_fix(args)
    elif args.command == "resolve":
        cmd_resolve(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()

"""Markdown bodies for reviews, tracking issues, commits and close comments."""

from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from ..models import Issue, FileReview, ConflictReport, Severity
from ..utils import calculate_scores, format_scores_report

TRACKING_TITLE_PREFIX = "Daily Review:"
TRACKING_MARKER = "Generated by pr-triage sweep"
REVIEW_FOOTER = "*Automated review by pr-triage*"

_GROUP_TITLES = {
    "security": "Security",
    "critical": "Critical",
    "format": "Formatting",
    "lint": "Lint",
    "warnings": "Warnings",
}


def group_by_file(issues: Iterable[Issue]) -> Dict[str, List[Issue]]:
    """Issues per file, files in first-seen order."""
    grouped: Dict[str, List[Issue]] = OrderedDict()
    for issue in issues:
        grouped.setdefault(issue.file, []).append(issue)
    return grouped


def _severity_table(issues: List[Issue]) -> List[str]:
    counts = {s.value: sum(1 for i in issues if i.severity == s.value) for s in Severity}
    return [
        "| Severity | Count |",
        "|----------|-------|",
        f"| High | {counts['high']} |",
        f"| Medium | {counts['medium']} |",
        f"| Low | {counts['low']} |",
        "",
    ]


def _format_issue(issue: Issue) -> List[str]:
    parts = [f"- **Line {issue.line}** `{issue.rule}`: {issue.message}"]
    if issue.suggestion:
        parts.append(f"  - Fix: {issue.suggestion}")
    if issue.original_code and issue.suggested_code:
        parts.append("  ```diff")
        parts.append(f"  - {issue.original_code.strip()}")
        for line in issue.suggested_code.strip().split("\n"):
            parts.append(f"  + {line.strip()}")
        parts.append("  ```")
    return parts


def render_file_section(review: FileReview) -> List[str]:
    """One file's findings, grouped by category."""
    parts = [
        f"### `{review.filename}` ({review.status}, +{review.additions}/-{review.deletions})",
        "",
    ]
    for group, issues in review.groups.items():
        parts.append(f"**{_GROUP_TITLES[group]}** ({len(issues)})")
        parts.append("")
        for issue in issues:
            parts.extend(_format_issue(issue))
        parts.append("")
    return parts


def render_review_body(issues: List[Issue], files: List[FileReview]) -> str:
    """
    Consolidated pull request review.

    Args:
        issues: Reported findings across all files
        files: Per-file summaries holding the same findings

    Returns:
        Markdown body
    """
    body_parts = ["## Code Review Summary", ""]

    if not issues:
        body_parts.append("No issues found in the changed lines. Ready to merge.")
    else:
        body_parts.append(f"Found **{len(issues)}** issues in the changed lines:")
        body_parts.append("")
        body_parts.extend(_severity_table(issues))

        if any(issue.is_blocking for issue in issues):
            body_parts.append("High severity and security issues must be addressed before merging.")
            body_parts.append("")

        body_parts.append(format_scores_report(calculate_scores(issues)))
        body_parts.append("")
        body_parts.append("## Details")
        body_parts.append("")
        for review in files:
            if review.issues:
                body_parts.extend(render_file_section(review))

        fixable = sum(1 for issue in issues if issue.has_fix)
        if fixable:
            body_parts.append(f"{fixable} of these issues have a suggested fix.")

    body_parts.append("")
    body_parts.append("---")
    body_parts.append(REVIEW_FOOTER)
    return "\n".join(body_parts)


def render_conflict_summary(conflicts: List[ConflictReport]) -> str:
    """Markdown list of files whose conflicts need a human."""
    body_parts = ["## Unresolved merge conflicts", ""]
    for report in conflicts:
        if report.can_auto_resolve:
            continue
        body_parts.append(
            f"- `{report.filename}`: {len(report.sections)} sections, "
            f"markers at lines {', '.join(str(n) for n in report.marker_lines)}"
        )
    return "\n".join(body_parts)


def tracking_title(issue_count: int, branch: str = "default branch") -> str:
    return f"{TRACKING_TITLE_PREFIX} {issue_count} issues found in {branch}"


def render_issue_body(issues: List[Issue]) -> str:
    """Tracking issue opened by a sweep."""
    body_parts = [
        "## Repository Sweep",
        "",
        f"Found **{len(issues)}** issues that need attention:",
        "",
    ]
    body_parts.extend(_severity_table(issues))
    body_parts.append("## Issues by File")
    body_parts.append("")

    for filename, file_issues in group_by_file(issues).items():
        body_parts.append(f"### `{filename}`")
        body_parts.append("")
        for issue in file_issues:
            body_parts.extend(_format_issue(issue))
        body_parts.append("")

    body_parts.append("---")
    body_parts.append(f"*{TRACKING_MARKER}*")
    return "\n".join(body_parts)


def is_tracking_issue(title: str, body: Optional[str]) -> bool:
    """Whether an open issue was opened by a previous sweep."""
    return title.startswith(TRACKING_TITLE_PREFIX) or TRACKING_MARKER in (body or "")


def render_commit_message(filename: str, issues: List[Issue]) -> str:
    lines = [f"Fix {len(issues)} issues in {filename}", "", "Fixed issues:"]
    lines.extend(f"- {issue.message} (line {issue.line})" for issue in issues)
    return "\n".join(lines)


def render_close_comment(fixed: List[Issue]) -> str:
    """Comment left on a tracking issue before closing it."""
    files = {issue.file for issue in fixed}
    body_parts = ["Resolved automatically. The following fixes were committed:", ""]
    body_parts.extend(f"- {issue.message} in `{issue.file}:{issue.line}`" for issue in fixed)
    body_parts.append("")
    body_parts.append(f"**{len(fixed)}** issues fixed across **{len(files)}** files.")
    return "\n".join(body_parts)

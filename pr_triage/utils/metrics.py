"""Metrics calculation utilities for the triage bot."""

import re
from dataclasses import dataclass
from typing import List

from ..models import Issue, Category, Severity

# Score lost per performance finding, by severity. Low findings are
# suppressed upstream and never reach the score.
PERFORMANCE_PENALTY = {
    Severity.HIGH.value: 30,
    Severity.MEDIUM.value: 5,
}
SECURITY_PENALTY = 25
QUALITY_PENALTY = 5
QUALITY_FLOOR = 20

_QUALITY_CATEGORIES = (
    Category.LINT.value,
    Category.FORMAT.value,
    Category.BEST_PRACTICE.value,
)

_DECISION_POINT = re.compile(r"\b(?:if|for|while|case|catch)\b|&&|\|\||(?<!\?)\?(?![.?])")


@dataclass
class ReviewScores:
    """Scores derived from the findings that survived filtering."""

    security: int = 100
    performance: int = 100
    code_quality: int = 100
    overall: int = 100

    # Severity breakdown
    high_count: int = 0
    medium_count: int = 0


def performance_score(issues: List[Issue]) -> int:
    """
    Score performance findings, 100 meaning none.

    Each high-severity performance finding costs 30 points and each
    medium one 5; the score floors at 0.
    """
    penalty = sum(
        PERFORMANCE_PENALTY.get(issue.severity, 0)
        for issue in issues
        if issue.category == Category.PERFORMANCE.value
    )
    return max(0, 100 - penalty)


def security_score(issues: List[Issue]) -> int:
    count = sum(1 for i in issues if i.category == Category.SECURITY.value)
    return max(0, 100 - count * SECURITY_PENALTY)


def quality_score(issues: List[Issue]) -> int:
    count = sum(1 for i in issues if i.category in _QUALITY_CATEGORIES)
    return max(QUALITY_FLOOR, 100 - count * QUALITY_PENALTY)


def calculate_scores(issues: List[Issue]) -> ReviewScores:
    """
    Calculate review scores from reported findings.

    Args:
        issues: Findings after the severity filter

    Returns:
        ReviewScores with a 0.4/0.3/0.3 weighted overall score
    """
    security = security_score(issues)
    performance = performance_score(issues)
    code_quality = quality_score(issues)

    overall = round(security * 0.4 + performance * 0.3 + code_quality * 0.3)

    return ReviewScores(
        security=security,
        performance=performance,
        code_quality=code_quality,
        overall=overall,
        high_count=sum(1 for i in issues if i.severity == Severity.HIGH.value),
        medium_count=sum(1 for i in issues if i.severity == Severity.MEDIUM.value),
    )


def cyclomatic_complexity(lines: List[str]) -> int:
    """Rough complexity: one plus the number of decision points."""
    return 1 + sum(len(_DECISION_POINT.findall(line)) for line in lines)


def maintainability_index(complexity: int, line_count: int, issue_count: int) -> int:
    """Heuristic 0-100 maintainability figure."""
    score = 100 - complexity * 0.5 - line_count / 50 - issue_count * 2
    return int(max(0, min(100, round(score))))


def format_scores_report(scores: ReviewScores) -> str:
    """Format scores as a markdown block."""
    lines = [
        "### Scores",
        "",
        f"- Overall: {scores.overall}/100",
        f"- Security: {scores.security}/100",
        f"- Performance: {scores.performance}/100",
        f"- Code quality: {scores.code_quality}/100",
    ]
    return "\n".join(lines)

"""Tests for metrics calculation."""

from pr_triage.models import Issue
from pr_triage.utils import (
    calculate_scores,
    performance_score,
    security_score,
    quality_score,
    cyclomatic_complexity,
    maintainability_index,
    format_scores_report,
)


def finding(category, severity="medium", line=1):
    return Issue(
        file="app.js",
        line=line,
        message=f"{category} finding",
        rule=f"{category}-rule",
        issue_type="warning",
        severity=severity,
        category=category,
    )


class TestPerformanceScore:
    """Tests for the performance score."""

    def test_no_findings(self):
        assert performance_score([]) == 100

    def test_one_high_two_medium(self):
        """Given 1 high and 2 medium performance findings, the score is 60."""
        issues = [
            finding("performance", "high"),
            finding("performance", "medium", line=2),
            finding("performance", "medium", line=3),
        ]

        assert performance_score(issues) == 60

    def test_floors_at_zero(self):
        issues = [finding("performance", "high", line=n) for n in range(4)]

        assert performance_score(issues) == 0

    def test_other_categories_ignored(self):
        assert performance_score([finding("security", "high")]) == 100


class TestCategoryScores:
    """Tests for security and quality scores."""

    def test_security_penalty(self):
        issues = [finding("security", "high", line=n) for n in range(2)]

        assert security_score(issues) == 50

    def test_quality_has_a_floor(self):
        issues = [finding("lint", line=n) for n in range(30)]

        assert quality_score(issues) == 20

    def test_calculate_scores_weights_and_counts(self):
        # Given
        issues = [
            finding("security", "high"),
            finding("performance", "medium", line=2),
            finding("lint", "medium", line=3),
        ]

        # When
        scores = calculate_scores(issues)

        # Then - 75 * 0.4 + 95 * 0.3 + 95 * 0.3
        assert (scores.security, scores.performance, scores.code_quality) == (75, 95, 95)
        assert scores.overall == 87
        assert (scores.high_count, scores.medium_count) == (1, 2)

    def test_scores_report_lists_each_score(self):
        report = format_scores_report(calculate_scores([]))

        assert "- Overall: 100/100" in report
        assert "- Security: 100/100" in report


class TestComplexity:
    """Tests for the complexity heuristics."""

    def test_decision_points(self):
        lines = ["for (const x of xs) {", "  if (x || y) { a(); }", "}", "const v = ok ? 1 : 2;"]

        assert cyclomatic_complexity(lines) == 5

    def test_optional_chaining_is_not_a_branch(self):
        assert cyclomatic_complexity(["a?.b ?? c"]) == 1

    def test_maintainability_is_bounded(self):
        assert maintainability_index(1, 10, 0) == 99
        assert maintainability_index(500, 10000, 100) == 0

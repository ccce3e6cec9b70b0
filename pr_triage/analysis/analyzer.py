"""Analyzer facade: rules, identity, cache, severity filter and metrics."""

import dataclasses
from typing import Iterable, List, Optional, Set

from ..config import ReviewConfig
from ..models import Issue, AnalysisMetrics, AnalysisResult, Category, REPORTED_SEVERITIES
from ..utils import get_logger, cyclomatic_complexity, maintainability_index, performance_score
from .conflict import check_conflicts
from .fixer import FixApplier, FixResult
from .identity import IssueCache, content_hash, dedupe, issue_hash, stamp
from .languages import language_for
from .rules import RuleEngine

logger = get_logger(__name__)

_CATEGORY_SUGGESTIONS = {
    Category.SECURITY.value: "Address security findings before merging",
    Category.PERFORMANCE.value: "Review loops and DOM access for avoidable work",
    Category.FORMAT.value: "Apply consistent formatting",
    Category.LINT.value: "Fix linting issues",
    Category.BEST_PRACTICE.value: "Review code quality and error handling",
}


def severity_filter(issues: Iterable[Issue]) -> List[Issue]:
    """Keep high and medium findings only."""
    return [issue for issue in issues if issue.severity in REPORTED_SEVERITIES]


def cache_key(file_hash: str, language: str) -> str:
    """Cache entries are per content and per language: rule sets differ by language."""
    return f"{file_hash}:{language}"


def suggestions_for(issues: List[Issue]) -> List[str]:
    """One general suggestion per category present, in catalog order."""
    present = {issue.category for issue in issues}
    suggestions = [text for category, text in _CATEGORY_SUGGESTIONS.items() if category in present]
    if any(issue.has_fix for issue in issues):
        suggestions.append("Run the fix command to apply suggested changes")
    return suggestions


class CodeAnalyzer:
    """
    Runs the rule engine over a file and shapes the result.

    The cache maps a content hash and language to the full, de-duplicated
    and stamped finding list of that content across all severities; line scoping and
    the severity filter are applied on the way out, so one entry serves
    both whole-file and diff-scoped calls.
    """

    def __init__(
        self,
        engine: Optional[RuleEngine] = None,
        cache: Optional[IssueCache] = None,
        config: Optional[ReviewConfig] = None,
    ):
        self.config = config or ReviewConfig()
        self.engine = engine or RuleEngine(
            line_width=self.config.line_width,
            context_window=self.config.context_window,
        )
        self.cache = cache if cache is not None else IssueCache()
        self.fixer = FixApplier()

    def _all_issues(self, content: str, filename: str, language: str) -> List[Issue]:
        key = cache_key(content_hash(content), language)

        def compute() -> List[Issue]:
            return stamp(dedupe(self.engine.analyze(content, filename, language)))

        issues = self.cache.get_or_compute(key, compute)
        if issues and issues[0].file != filename:
            # Same content under another path
            issues = stamp(dataclasses.replace(issue, file=filename) for issue in issues)
        return issues

    def _report(self, issues: List[Issue]) -> List[Issue]:
        if self.config.report_low:
            return list(issues)
        return severity_filter(issues)

    def analyze(
        self,
        content: str,
        filename: str,
        language: Optional[str] = None,
        line_filter: Optional[Set[int]] = None,
    ) -> AnalysisResult:
        """
        Analyze a file, optionally reporting only some of its lines.

        Args:
            content: File text
            filename: Path reported on findings
            language: Language name; detected from the filename when omitted
            line_filter: 1-based line numbers allowed to report findings

        Returns:
            AnalysisResult; on an internal failure an empty result with
            zero metrics, so one bad file never aborts a batch
        """
        try:
            language = language or language_for(filename)
            file_hash = content_hash(content)
            conflict = check_conflicts(content, filename)

            issues = self._all_issues(content, filename, language)
            if line_filter is not None:
                issues = [issue for issue in issues if issue.line in line_filter]
            reported = self._report(issues)

            lines = content.split("\n")
            complexity = cyclomatic_complexity(lines)
            metrics = AnalysisMetrics(
                complexity=complexity,
                maintainability=maintainability_index(complexity, len(lines), len(reported)),
                performance_score=performance_score(reported),
            )

            logger.debug(
                f"Analyzed {filename} ({language}): {len(issues)} findings, {len(reported)} reported"
            )
            return AnalysisResult(
                issues=reported,
                metrics=metrics,
                suggestions=suggestions_for(reported),
                file_hash=file_hash,
                conflict=conflict,
            )
        except Exception:
            logger.exception(f"Code analysis failed for {filename}")
            return AnalysisResult()

    def analyze_changed_lines(
        self,
        content: str,
        filename: str,
        language: Optional[str],
        changed_lines: Iterable[int],
    ) -> AnalysisResult:
        """Diff-scoped analysis: only ``changed_lines`` may report."""
        return self.analyze(content, filename, language, line_filter=set(changed_lines))

    def validate_issue(self, content: str, issue: Issue) -> bool:
        """Whether ``content`` still produces ``issue`` (compared by hash)."""
        try:
            wanted = issue.hash or issue_hash(issue)
            current = self._all_issues(content, issue.file, language_for(issue.file))
            return any(i.hash == wanted for i in current)
        except Exception:
            logger.exception(f"Issue validation failed for {issue.file}:{issue.line}")
            return False

    def apply_fixes(self, content: str, issues: Iterable[Issue]) -> FixResult:
        return self.fixer.apply(content, issues)

    def fix_issues(self, content: str, issues: Iterable[Issue]) -> str:
        """Content with every applicable fix applied."""
        return self.apply_fixes(content, issues).content

    def clear_cache(self, file_hash: Optional[str] = None) -> None:
        """Drop the entries of one content hash (every language), or all entries."""
        if file_hash is None:
            self.cache.clear()
            return
        for key in self.cache.keys():
            if key.partition(":")[0] == file_hash:
                self.cache.clear(key)

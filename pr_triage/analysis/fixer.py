"""Apply suggested replacements to source text."""

from dataclasses import dataclass, field
from typing import Iterable, List

from ..models import Issue
from ..utils import get_logger

logger = get_logger(__name__)


@dataclass
class FixResult:
    """Rewritten content plus how many fixes landed."""
    content: str
    applied: int = 0
    skipped: int = 0
    fixed: List[Issue] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.applied > 0


def fixable(issues: Iterable[Issue]) -> List[Issue]:
    """Issues carrying a replacement, highest line first."""
    candidates = [issue for issue in issues if issue.has_fix]
    return sorted(candidates, key=lambda issue: issue.line, reverse=True)


class FixApplier:
    """
    Rewrites a file from fixable findings.

    Issues are applied bottom-up so a multi-line replacement never shifts
    the line numbers of issues still waiting. Before each replacement the
    target line is compared with the snapshot captured at analysis time; a
    mismatch means the line moved or was already rewritten, so that fix is
    skipped and the rest continue.
    """

    def apply(self, content: str, issues: Iterable[Issue]) -> FixResult:
        lines = content.split("\n")
        result = FixResult(content=content)

        for issue in fixable(issues):
            index = issue.line - 1
            if index < 0 or index >= len(lines):
                logger.debug(f"Skipping fix for {issue.file}:{issue.line}: line out of range")
                result.skipped += 1
                continue

            if lines[index].strip() != issue.original_code.strip():
                logger.debug(f"Skipping stale fix for {issue.file}:{issue.line} ({issue.rule})")
                result.skipped += 1
                continue

            replacement = issue.suggested_code.split("\n")
            if lines[index].endswith("\r"):
                # CRLF file: every spliced line keeps the ending
                replacement = [line.rstrip("\r") + "\r" for line in replacement]
            lines[index:index + 1] = replacement
            result.applied += 1
            result.fixed.append(issue)

        result.content = "\n".join(lines)
        if result.applied or result.skipped:
            logger.info(f"Applied {result.applied} fixes, skipped {result.skipped}")
        return result


def apply_fixes(content: str, issues: Iterable[Issue]) -> str:
    """Return ``content`` with every applicable fix applied."""
    return FixApplier().apply(content, issues).content

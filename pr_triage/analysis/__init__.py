"""Line-scoped code analysis.

This package provides:
- RuleEngine: the catalog of line rules
- CodeAnalyzer: cached, severity-filtered analysis of one file
- ConflictResolver: merge-conflict scanning and fail-closed resolution
- FixApplier: applies suggested replacements with a staleness guard
"""

from .rules import Rule, RuleEngine, LineContext, DEFAULT_RULES
from .identity import IssueCache, content_hash, issue_hash, dedupe, stamp
from .languages import language_for, is_code_file
from .conflict import (
    ConflictState,
    ConflictResolver,
    next_state,
    has_conflicts,
    extract_sections,
    is_auto_resolvable,
    check_conflicts,
    resolve,
)
from .fixer import FixApplier, FixResult, apply_fixes
from .analyzer import CodeAnalyzer, severity_filter

__all__ = [
    "Rule",
    "RuleEngine",
    "LineContext",
    "DEFAULT_RULES",
    "IssueCache",
    "content_hash",
    "issue_hash",
    "dedupe",
    "stamp",
    "language_for",
    "is_code_file",
    "ConflictState",
    "ConflictResolver",
    "next_state",
    "has_conflicts",
    "extract_sections",
    "is_auto_resolvable",
    "check_conflicts",
    "resolve",
    "FixApplier",
    "FixResult",
    "apply_fixes",
    "CodeAnalyzer",
    "severity_filter",
]

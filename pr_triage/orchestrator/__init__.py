"""Review orchestration.

This module provides:
- ReviewOrchestrator: PR review, repository sweep and fix workflow
- MergeExecutor: auto-merge execution
- report: markdown rendering for reviews, tracking issues and commits
"""

from .orchestrator import ReviewOrchestrator, determine_event
from .merge import MergeExecutor, should_merge, blocking_issues
from .report import (
    TRACKING_TITLE_PREFIX,
    TRACKING_MARKER,
    is_tracking_issue,
    render_review_body,
    render_issue_body,
)

__all__ = [
    "ReviewOrchestrator",
    "determine_event",
    "MergeExecutor",
    "should_merge",
    "blocking_issues",
    "TRACKING_TITLE_PREFIX",
    "TRACKING_MARKER",
    "is_tracking_issue",
    "render_review_body",
    "render_issue_body",
]

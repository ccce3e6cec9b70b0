"""Data models for PR triage."""

from .issue import (
    Severity,
    IssueType,
    Category,
    Issue,
    AnalysisMetrics,
    AnalysisResult,
    REPORTED_SEVERITIES,
)
from .conflict import ConflictSection, ConflictReport
from .review import (
    ReviewState,
    ReviewEvent,
    PullRequestInfo,
    FileChange,
    FileReview,
    MergeResult,
    FixReport,
    ReviewResult,
)

__all__ = [
    "Severity",
    "IssueType",
    "Category",
    "Issue",
    "AnalysisMetrics",
    "AnalysisResult",
    "REPORTED_SEVERITIES",
    "ConflictSection",
    "ConflictReport",
    "ReviewState",
    "ReviewEvent",
    "PullRequestInfo",
    "FileChange",
    "FileReview",
    "MergeResult",
    "FixReport",
    "ReviewResult",
]

"""Data models for pull request review orchestration."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Optional
from datetime import datetime

from .issue import Issue, Severity
from .conflict import ConflictReport


class ReviewState(Enum):
    """States of a single review invocation."""
    FETCH = "fetch"
    CONFLICT_CHECK = "conflict_check"
    ABORT_CONFLICT = "abort_conflict"   # Terminal: irresolvable conflict
    ANALYZE = "analyze"
    AGGREGATE = "aggregate"
    OWN_PR_REPORT = "own_pr_report"     # Terminal: analysis only, nothing posted
    POST_REVIEW = "post_review"
    AUTO_MERGE = "auto_merge"
    DONE = "done"


class ReviewEvent(Enum):
    """Verdicts the collaboration service accepts on a review."""
    APPROVE = "APPROVE"
    REQUEST_CHANGES = "REQUEST_CHANGES"
    COMMENT = "COMMENT"


@dataclass
class PullRequestInfo:
    """PR descriptor fetched at the start of a review."""
    number: int
    title: str
    author: str
    head_ref: str
    head_sha: str
    base_ref: str
    state: str = "open"


@dataclass
class FileChange:
    """A changed file as listed on a pull request."""
    filename: str
    status: str               # added, modified, removed, renamed
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: Optional[str] = None


@dataclass
class FileReview:
    """Per-file change summary and findings."""
    filename: str
    status: str
    additions: int = 0
    deletions: int = 0
    changed_lines: List[int] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)
    language: str = "text"

    @property
    def groups(self) -> Dict[str, List[Issue]]:
        """Findings bucketed for the review body, in report order."""
        buckets: Dict[str, List[Issue]] = {
            "security": [],
            "critical": [],
            "format": [],
            "lint": [],
            "warnings": [],
        }
        for issue in self.issues:
            if issue.category == "security":
                buckets["security"].append(issue)
            elif issue.severity == Severity.HIGH.value:
                buckets["critical"].append(issue)
            elif issue.category == "format":
                buckets["format"].append(issue)
            elif issue.category == "lint":
                buckets["lint"].append(issue)
            else:
                buckets["warnings"].append(issue)
        return {name: issues for name, issues in buckets.items() if issues}


@dataclass
class MergeResult:
    """Result of a merge operation."""
    pr_number: int
    success: bool
    method: str = "merge"
    commit_sha: Optional[str] = None
    error: Optional[str] = None
    merged_at: Optional[datetime] = None


@dataclass
class FixReport:
    """Outcome of pushing auto-fixes to the repository."""
    fixed_files: List[str] = field(default_factory=list)
    fixed_issues: List[Issue] = field(default_factory=list)
    applied: int = 0
    skipped: int = 0
    commit_messages: List[str] = field(default_factory=list)
    closed_issue_numbers: List[int] = field(default_factory=list)

    @property
    def already_fixed(self) -> bool:
        return not self.fixed_files


@dataclass
class ReviewResult:
    """Orchestration output for one PR or sweep invocation."""
    state: ReviewState
    pull_request: Optional[PullRequestInfo] = None
    issues: List[Issue] = field(default_factory=list)
    files: List[FileReview] = field(default_factory=list)
    conflicts: List[ConflictReport] = field(default_factory=list)
    event: Optional[ReviewEvent] = None
    review_posted: bool = False
    merge: Optional[MergeResult] = None
    fix_report: Optional[FixReport] = None
    issue_number: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.state != ReviewState.ABORT_CONFLICT

    @property
    def issues_found(self) -> int:
        return len(self.issues)

    @property
    def critical_issues(self) -> int:
        return sum(1 for i in self.issues if i.severity == Severity.HIGH.value)

    @property
    def auto_merged(self) -> bool:
        return bool(self.merge and self.merge.success)

    @property
    def has_unresolved_conflicts(self) -> bool:
        return any(not c.can_auto_resolve for c in self.conflicts)

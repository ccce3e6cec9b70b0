"""Data models for analysis findings."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List

from .conflict import ConflictReport


class Severity(Enum):
    """Finding severity levels."""
    HIGH = "high"       # Blocks merge
    MEDIUM = "medium"   # Reported, does not block
    LOW = "low"         # Computed, suppressed from output


class IssueType(Enum):
    """Kind of finding, as a linter would report it."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Category(Enum):
    """Rule families a finding can belong to."""
    SECURITY = "security"
    PERFORMANCE = "performance"
    FORMAT = "format"
    LINT = "lint"
    BEST_PRACTICE = "best-practice"


# Severities that survive the default severity filter
REPORTED_SEVERITIES = (Severity.HIGH.value, Severity.MEDIUM.value)


@dataclass
class Issue:
    """A single finding against one line of one file."""
    file: str
    line: int
    message: str
    rule: str
    issue_type: str  # IssueType value
    severity: str    # Severity value
    category: str    # Category value
    suggestion: str = ""
    fixable: bool = False
    original_code: str = ""
    suggested_code: Optional[str] = None
    column: Optional[int] = None
    hash: str = ""
    id: str = ""

    @property
    def identity(self) -> tuple:
        """Key under which two findings count as the same one."""
        return (self.file, self.line, self.rule or self.issue_type)

    @property
    def is_blocking(self) -> bool:
        """High severity and security findings block approval and merge."""
        return (
            self.severity == Severity.HIGH.value
            or self.category == Category.SECURITY.value
        )

    @property
    def has_fix(self) -> bool:
        return self.fixable and bool(self.suggested_code)


@dataclass
class AnalysisMetrics:
    """Per-analysis metrics."""
    complexity: int = 0
    maintainability: int = 0
    performance_score: Optional[int] = None


@dataclass
class AnalysisResult:
    """Output of one analyzer call."""
    issues: List[Issue] = field(default_factory=list)
    metrics: AnalysisMetrics = field(default_factory=AnalysisMetrics)
    suggestions: List[str] = field(default_factory=list)
    file_hash: Optional[str] = None
    conflict: Optional[ConflictReport] = None

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflict and self.conflict.has_conflicts)

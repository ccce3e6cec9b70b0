"""Data models for merge-conflict scanning."""

from dataclasses import dataclass, field
from typing import List


@dataclass
class ConflictSection:
    """One region between conflict markers."""
    start_line: int
    end_line: int
    ours_label: str
    theirs_label: str
    ours_lines: List[str] = field(default_factory=list)
    theirs_lines: List[str] = field(default_factory=list)

    @property
    def ours_blank(self) -> bool:
        return all(not line.strip() for line in self.ours_lines)

    @property
    def theirs_blank(self) -> bool:
        return all(not line.strip() for line in self.theirs_lines)


@dataclass
class ConflictReport:
    """Conflict diagnostics for one file."""
    has_conflicts: bool = False
    marker_count: int = 0
    marker_lines: List[int] = field(default_factory=list)
    can_auto_resolve: bool = False
    sections: List[ConflictSection] = field(default_factory=list)
    filename: str = ""

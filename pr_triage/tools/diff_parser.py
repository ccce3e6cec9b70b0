"""Git diff parsing utilities."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set
import re

HUNK_HEADER = re.compile(r'^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(.*)$')
FILE_HEADER = re.compile(r'^diff --git a/(.*) b/(.*)$')


@dataclass
class Hunk:
    """Represents a single hunk from a git diff."""
    file_path: str
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    content: str
    header: str


@dataclass
class FileDiff:
    """Represents all changes to a single file."""
    old_path: Optional[str]
    new_path: str
    hunks: List[Hunk] = field(default_factory=list)
    is_new_file: bool = False
    is_deleted: bool = False

    @property
    def patch(self) -> str:
        """The hunks of this file, as a PR file listing reports them."""
        return '\n'.join(f"{h.header}\n{h.content}" for h in self.hunks)


def parse_changed_lines(patch: Optional[str]) -> Set[int]:
    """
    Collect the new-revision line numbers a patch adds.

    The counter is reset by every hunk header to one before the new-file
    start. Added lines advance it and are recorded, context lines advance
    it only, removed lines do neither.

    Args:
        patch: Unified diff text for one file (hunks, optionally headers)

    Returns:
        Set of 1-based line numbers in the new file; empty when the patch
        is empty or has no hunk header
    """
    changed: Set[int] = set()
    if not patch:
        return changed

    current: Optional[int] = None

    for line in patch.split('\n'):
        match = HUNK_HEADER.match(line)
        if match:
            current = int(match.group(3)) - 1
            continue

        # Anything before the first hunk header is file metadata
        if current is None:
            continue

        if line.startswith('+++ ') or line.startswith('--- '):
            continue
        if line.startswith('+'):
            current += 1
            changed.add(current)
        elif line.startswith(' '):
            current += 1
        # '-' lines and "\ No newline at end of file" leave the counter alone

    return changed


def parse_pr_diff(diff_text: str) -> List[FileDiff]:
    """
    Parse a multi-file unified diff into structured FileDiff objects.

    Args:
        diff_text: Raw unified diff output from git

    Returns:
        List of FileDiff objects containing parsed hunks
    """
    if not diff_text or not diff_text.strip():
        return []

    file_diffs = []
    current_file: Optional[FileDiff] = None
    current_hunk_lines: List[str] = []
    current_hunk_header: Optional[str] = None

    def save_current_hunk():
        nonlocal current_hunk_lines, current_hunk_header
        if current_file and current_hunk_header:
            match = HUNK_HEADER.match(current_hunk_header)
            if match:
                current_file.hunks.append(Hunk(
                    file_path=current_file.new_path,
                    old_start=int(match.group(1)),
                    old_lines=int(match.group(2) or 1),
                    new_start=int(match.group(3)),
                    new_lines=int(match.group(4) or 1),
                    content='\n'.join(current_hunk_lines),
                    header=current_hunk_header,
                ))
        current_hunk_lines = []
        current_hunk_header = None

    for line in diff_text.split('\n'):
        file_match = FILE_HEADER.match(line)
        if file_match:
            save_current_hunk()
            if current_file:
                file_diffs.append(current_file)
            current_file = FileDiff(
                old_path=file_match.group(1),
                new_path=file_match.group(2),
            )
            continue

        if current_file and current_hunk_header is None:
            if line.startswith('new file mode'):
                current_file.is_new_file = True
                continue
            if line.startswith('deleted file mode'):
                current_file.is_deleted = True
                continue

        if HUNK_HEADER.match(line):
            save_current_hunk()
            current_hunk_header = line
            continue

        if current_hunk_header is not None and line[:1] in ('+', '-', ' ', '\\'):
            if line.startswith('+++ ') or line.startswith('--- '):
                continue
            current_hunk_lines.append(line)

    save_current_hunk()
    if current_file:
        file_diffs.append(current_file)

    return file_diffs


def changed_lines_by_file(diff_text: str) -> Dict[str, Set[int]]:
    """Map each file of a multi-file diff to its changed-line set."""
    return {
        file_diff.new_path: parse_changed_lines(file_diff.patch)
        for file_diff in parse_pr_diff(diff_text)
        if not file_diff.is_deleted
    }

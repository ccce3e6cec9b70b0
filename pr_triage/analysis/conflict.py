"""Merge-conflict marker scanning and resolution."""

import re
from enum import Enum
from typing import List, Optional, Tuple

from ..models import ConflictSection, ConflictReport
from ..utils import get_logger
from .languages import line_comment_prefix

logger = get_logger(__name__)

START_MARKER = re.compile(r'^<{7}(?:\s(.*))?$')
SEPARATOR = re.compile(r'^={7}$')
END_MARKER = re.compile(r'^>{7}(?:\s(.*))?$')


class ConflictState(Enum):
    """Where a line scan stands relative to conflict markers."""
    OUTSIDE = "outside"
    IN_OURS = "in_ours"
    IN_THEIRS = "in_theirs"


def next_state(state: ConflictState, line: str) -> ConflictState:
    """
    One transition of the marker state machine.

    A start marker opens a section from OUTSIDE, the separator moves
    IN_OURS to IN_THEIRS and an end marker closes IN_THEIRS. Any other
    line, including a marker out of sequence, leaves the state unchanged.
    A trailing carriage return never prevents a marker from matching.
    """
    marker = line.rstrip("\r")
    if state == ConflictState.OUTSIDE and START_MARKER.match(marker):
        return ConflictState.IN_OURS
    if state == ConflictState.IN_OURS and SEPARATOR.match(marker):
        return ConflictState.IN_THEIRS
    if state == ConflictState.IN_THEIRS and END_MARKER.match(marker):
        return ConflictState.OUTSIDE
    return state


def _label(pattern: re.Pattern, line: str) -> str:
    return (pattern.match(line.rstrip("\r")).group(1) or "").strip()


def _scan(content: str) -> Tuple[List[ConflictSection], List[int], bool]:
    """
    Walk the content once.

    Returns:
        Closed sections, 1-based marker line numbers, and whether every
        marker was part of a well-formed section
    """
    sections: List[ConflictSection] = []
    marker_lines: List[int] = []
    well_formed = True

    state = ConflictState.OUTSIDE
    current: Optional[ConflictSection] = None

    for index, line in enumerate(content.split("\n")):
        line_number = index + 1
        new_state = next_state(state, line)

        if new_state != state:
            marker_lines.append(line_number)
            if new_state == ConflictState.IN_OURS:
                current = ConflictSection(
                    start_line=line_number,
                    end_line=line_number,
                    ours_label=_label(START_MARKER, line),
                    theirs_label="",
                )
            elif new_state == ConflictState.OUTSIDE:
                current.end_line = line_number
                current.theirs_label = _label(END_MARKER, line)
                sections.append(current)
                current = None
            state = new_state
            continue

        marker = line.rstrip("\r")
        if START_MARKER.match(marker) or END_MARKER.match(marker):
            # Out-of-sequence marker: nested start, stray end, end before separator
            marker_lines.append(line_number)
            well_formed = False
        elif state == ConflictState.IN_OURS:
            current.ours_lines.append(line)
        elif state == ConflictState.IN_THEIRS:
            if SEPARATOR.match(marker):
                marker_lines.append(line_number)
                well_formed = False
            current.theirs_lines.append(line)

    if state != ConflictState.OUTSIDE:
        well_formed = False

    return sections, marker_lines, well_formed


def has_conflicts(content: str) -> bool:
    """Whether any start or end conflict marker line is present."""
    markers = (line.rstrip("\r") for line in content.split("\n"))
    return any(START_MARKER.match(m) or END_MARKER.match(m) for m in markers)


def extract_sections(content: str) -> List[ConflictSection]:
    """Every complete conflict section, in file order."""
    return _scan(content)[0]


def _squash(lines: List[str]) -> str:
    return re.sub(r'\s+', '', "".join(lines))


def is_auto_resolvable(section: ConflictSection) -> bool:
    """One side is blank, or both sides match ignoring all whitespace."""
    if section.ours_blank or section.theirs_blank:
        return True
    return _squash(section.ours_lines) == _squash(section.theirs_lines)


def check_conflicts(content: str, filename: str = "") -> ConflictReport:
    """Conflict diagnostics for one file."""
    if not has_conflicts(content):
        return ConflictReport(filename=filename)

    sections, marker_lines, well_formed = _scan(content)
    return ConflictReport(
        has_conflicts=True,
        marker_count=len(marker_lines),
        marker_lines=marker_lines,
        can_auto_resolve=well_formed and all(is_auto_resolvable(s) for s in sections),
        sections=sections,
        filename=filename,
    )


def merge_sides(section: ConflictSection, comment: str = "//") -> List[str]:
    """
    Replacement lines for one section.

    The non-blank side wins when the other is blank, ours wins when the
    sides differ only in whitespace, and anything else becomes a marked
    concatenation: ours, then the lines of theirs not already in ours.
    """
    ours, theirs = section.ours_lines, section.theirs_lines

    if section.ours_blank and not section.theirs_blank:
        return list(theirs)
    if section.theirs_blank:
        return list(ours)
    if _squash(ours) == _squash(theirs):
        return list(ours)

    eol = "\r" if any(line.endswith("\r") for line in ours + theirs) else ""
    return (
        [f"{comment} Merged from both branches:{eol}"]
        + list(ours)
        + [f"{comment} Additional changes:{eol}"]
        + [line for line in theirs if line not in ours]
    )


def resolve(content: str, filename: str = "") -> str:
    """
    Replace every conflict block with its merged lines.

    This applies the merge policy to each section unconditionally,
    including the marked-concatenation fallback; use ``ConflictResolver``
    when only fully auto-resolvable files may be touched.
    """
    sections = extract_sections(content)
    if not sections:
        return content

    comment = line_comment_prefix(filename) if filename else "//"
    lines = content.split("\n")

    # Bottom-up so earlier sections keep their line numbers
    for section in reversed(sections):
        lines[section.start_line - 1:section.end_line] = merge_sides(section, comment)

    logger.info(f"Resolved {len(sections)} conflict sections in {filename or 'content'}")
    return "\n".join(lines)


class ConflictResolver:
    """Whole-file, fail-closed conflict resolution."""

    def check(self, content: str, filename: str = "") -> ConflictReport:
        return check_conflicts(content, filename)

    def try_resolve(self, content: str, filename: str = "") -> Optional[str]:
        """
        Resolve a file only when every section is auto-resolvable.

        Returns:
            The resolved text, the input unchanged when there is no
            conflict, or None when any section needs a human
        """
        report = check_conflicts(content, filename)
        if not report.has_conflicts:
            return content
        if not report.can_auto_resolve:
            logger.warning(
                f"{filename or 'content'} has conflicts that cannot be auto-resolved "
                f"(markers at lines {report.marker_lines})"
            )
            return None
        return resolve(content, filename)

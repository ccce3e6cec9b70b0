"""Deterministic finding identity, de-duplication and the result cache."""

import hashlib
import time
from typing import Callable, Dict, Iterable, List, Optional

from ..models import Issue
from ..utils import get_logger

logger = get_logger(__name__)


def content_hash(content: str) -> str:
    """Stable digest of a text, identical across runs and processes."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:16]


def issue_hash(issue: Issue) -> str:
    """Hash over (file, line, rule-or-type, message); ``id`` never takes part."""
    key = f"{issue.file}:{issue.line}:{issue.rule or issue.issue_type}:{issue.message}"
    return content_hash(key)


def issue_id(issue: Issue, timestamp_ms: Optional[int] = None) -> str:
    """Display id. Embeds the generation time, so never compare on it."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{issue.file}:{issue.line}:{issue.rule or issue.issue_type}:{timestamp_ms}"


def stamp(issues: Iterable[Issue]) -> List[Issue]:
    """Fill in hash and id on each issue, in place."""
    now = int(time.time() * 1000)
    stamped = []
    for issue in issues:
        issue.hash = issue_hash(issue)
        issue.id = issue_id(issue, now)
        stamped.append(issue)
    return stamped


def dedupe(issues: Iterable[Issue]) -> List[Issue]:
    """Keep the first issue per (file, line, rule-or-type), preserving order."""
    seen = set()
    unique = []
    for issue in issues:
        if issue.identity in seen:
            continue
        seen.add(issue.identity)
        unique.append(issue)
    return unique


class IssueCache:
    """
    Content-hash keyed store of analysis results.

    Entries are written once per key and live until ``clear``; there is no
    expiry. The analyzer that owns an instance is its only writer, and
    callers running analyzers from several threads must guard it themselves.
    """

    def __init__(self):
        self._entries: Dict[str, List[Issue]] = {}

    def get(self, key: str) -> Optional[List[Issue]]:
        entry = self._entries.get(key)
        return list(entry) if entry is not None else None

    def get_or_compute(self, key: str, compute: Callable[[], List[Issue]]) -> List[Issue]:
        """Return the cached issues for ``key``, computing and storing on a miss."""
        if key in self._entries:
            logger.debug(f"Cache hit for {key}")
            return list(self._entries[key])

        issues = compute()
        self._entries[key] = list(issues)
        return list(issues)

    def clear(self, key: Optional[str] = None) -> None:
        """Drop one entry, or every entry when no key is given."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

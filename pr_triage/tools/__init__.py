"""Tools for the PR triage bot."""

from .github_tool import (
    GitHubTool,
    GitHubToolError,
    SelfReviewForbidden,
    ContentNotFound,
    classify_error,
)
from .diff_parser import parse_changed_lines, parse_pr_diff, changed_lines_by_file

__all__ = [
    "GitHubTool",
    "GitHubToolError",
    "SelfReviewForbidden",
    "ContentNotFound",
    "classify_error",
    "parse_changed_lines",
    "parse_pr_diff",
    "changed_lines_by_file",
]

"""Auto-merge decision and execution."""

from datetime import datetime
from typing import List

from ..config import ReviewConfig
from ..models import Issue, MergeResult, PullRequestInfo, Severity
from ..utils import get_logger

logger = get_logger(__name__)


def blocking_issues(issues: List[Issue], strict: bool = False) -> List[Issue]:
    """
    Findings that keep a pull request from being merged.

    High severity and security findings always block; in strict mode
    medium findings block too.
    """
    return [
        issue for issue in issues
        if issue.is_blocking or (strict and issue.severity == Severity.MEDIUM.value)
    ]


def should_merge(issues: List[Issue], config: ReviewConfig) -> bool:
    return config.auto_merge and not blocking_issues(issues, config.strict_mode)


class MergeExecutor:
    """
    Executes merge operations for reviewed PRs.

    GitHub failures are not caught here: a refused or failed merge
    propagates to the caller like any other external error.
    """

    def __init__(self, github, config: ReviewConfig):
        """
        Initialize merge executor.

        Args:
            github: GitHubTool (or any object with the same coroutines)
            config: Review configuration
        """
        self.github = github
        self.config = config

    async def merge(self, owner: str, repo: str, pr: PullRequestInfo) -> MergeResult:
        """
        Merge a single PR.

        Args:
            owner: Repository owner
            repo: Repository name
            pr: Descriptor fetched at the start of the review

        Returns:
            MergeResult with the merge commit SHA
        """
        if pr.state != "open":
            logger.info(f"PR #{pr.number} is {pr.state}, nothing to merge")
            return MergeResult(
                pr_number=pr.number,
                success=False,
                method=self.config.merge_method,
                error=f"PR is {pr.state}",
            )

        logger.info(f"Merging PR #{pr.number} ({self.config.merge_method})")
        sha = await self.github.merge_pull_request(owner, repo, pr.number, self.config.merge_method)
        logger.info(f"PR #{pr.number} merged successfully")

        return MergeResult(
            pr_number=pr.number,
            success=True,
            method=self.config.merge_method,
            commit_sha=sha,
            merged_at=datetime.now(),
        )

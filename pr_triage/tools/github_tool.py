"""GitHub API wrapper for PR triage operations."""

import asyncio
import os
from typing import Any, Callable, Dict, List, Optional

from github import Auth, Github, GithubException, UnknownObjectException
from github.Repository import Repository as GHRepository

from ..models import FileChange, PullRequestInfo
from ..utils import get_logger

logger = get_logger(__name__)

# Fragment of the 422 message GitHub returns when the token owner
# reviews their own pull request.
_OWN_PULL_REQUEST = "your own pull request"


class GitHubToolError(Exception):
    """An external call to GitHub failed."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class SelfReviewForbidden(GitHubToolError):
    """GitHub refused a review because the reviewer authored the PR."""


class ContentNotFound(GitHubToolError):
    """A file or ref does not exist at the requested revision."""


def classify_error(exc: GithubException) -> GitHubToolError:
    """Map a PyGithub exception onto this module's error kinds."""
    data = exc.data if isinstance(exc.data, dict) else {}
    message = str(data.get("message") or exc)
    details = " ".join(str(e) for e in data.get("errors", []) or [])

    if exc.status == 422 and _OWN_PULL_REQUEST in f"{message} {details}".lower():
        return SelfReviewForbidden(message, status=exc.status)
    if exc.status == 404 or isinstance(exc, UnknownObjectException):
        return ContentNotFound(message, status=exc.status)
    return GitHubToolError(f"GitHub API error: {exc.status} {message}", status=exc.status)


class GitHubTool:
    """
    GitHub API wrapper for the review workflow.

    Handles:
    - Fetching PR metadata, changed files and file contents
    - Committing file updates (conflict resolutions, auto-fixes)
    - Posting reviews and merging
    - Tracking issue lifecycle

    Every method is a coroutine; the blocking PyGithub call runs in a worker
    thread and GithubException is translated into GitHubToolError kinds.
    """

    def __init__(self, token: Optional[str] = None, base_url: Optional[str] = None):
        """
        Initialize GitHub tool.

        Args:
            token: GitHub token (defaults to GITHUB_TOKEN env var)
            base_url: API root for GitHub Enterprise installations
        """
        self.token = token or os.environ.get("GITHUB_TOKEN")
        if not self.token:
            raise ValueError("GitHub token required. Set GITHUB_TOKEN env var or pass token parameter.")

        kwargs: Dict[str, Any] = {"auth": Auth.Token(self.token)}
        if base_url:
            kwargs["base_url"] = base_url
        self.gh = Github(**kwargs)
        self._repos: Dict[str, GHRepository] = {}
        self._login: Optional[str] = None

    async def _call(self, fn: Callable, *args, **kwargs):
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except GithubException as e:
            raise classify_error(e) from e

    async def _repo(self, owner: str, repo: str) -> GHRepository:
        full_name = f"{owner}/{repo}"
        if full_name not in self._repos:
            self._repos[full_name] = await self._call(self.gh.get_repo, full_name)
        return self._repos[full_name]

    async def get_authenticated_login(self) -> str:
        """Login of the identity the token acts as (cached)."""
        if self._login is None:
            user = await self._call(self.gh.get_user)
            self._login = await self._call(lambda: user.login)
        return self._login

    async def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequestInfo:
        gh_repo = await self._repo(owner, repo)
        pr = await self._call(gh_repo.get_pull, number)
        return PullRequestInfo(
            number=pr.number,
            title=pr.title,
            author=pr.user.login,
            head_ref=pr.head.ref,
            head_sha=pr.head.sha,
            base_ref=pr.base.ref,
            state=pr.state,
        )

    async def get_pull_request_files(self, owner: str, repo: str, number: int) -> List[FileChange]:
        gh_repo = await self._repo(owner, repo)

        def fetch():
            return [
                FileChange(
                    filename=f.filename,
                    status=f.status,
                    additions=f.additions,
                    deletions=f.deletions,
                    changes=f.changes,
                    patch=f.patch,
                )
                for f in gh_repo.get_pull(number).get_files()
            ]

        return await self._call(fetch)

    async def get_file_content(
        self, owner: str, repo: str, path: str, ref: Optional[str] = None
    ) -> Optional[str]:
        """
        Fetch a file's text at a ref.

        Returns:
            Decoded content, or None when the file is missing, a directory
            or not valid UTF-8
        """
        gh_repo = await self._repo(owner, repo)
        kwargs = {"ref": ref} if ref else {}
        try:
            contents = await self._call(gh_repo.get_contents, path, **kwargs)
        except ContentNotFound:
            logger.debug(f"No content for {path} at {ref or 'default branch'}")
            return None

        if isinstance(contents, list):
            return None
        try:
            return contents.decoded_content.decode("utf-8")
        except UnicodeDecodeError:
            logger.debug(f"Skipping non-text file {path}")
            return None

    async def get_file_sha(
        self, owner: str, repo: str, path: str, ref: Optional[str] = None
    ) -> Optional[str]:
        """Blob SHA used for optimistic-concurrency updates."""
        gh_repo = await self._repo(owner, repo)
        kwargs = {"ref": ref} if ref else {}
        try:
            contents = await self._call(gh_repo.get_contents, path, **kwargs)
        except ContentNotFound:
            return None
        if isinstance(contents, list):
            return None
        return contents.sha

    async def update_file_content(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        message: str,
        sha: str,
        branch: Optional[str] = None,
    ) -> str:
        """
        Commit new content for a file.

        Returns:
            SHA of the created commit
        """
        gh_repo = await self._repo(owner, repo)
        kwargs = {"branch": branch} if branch else {}
        logger.info(f"Updating file {path} with message: {message.splitlines()[0]}")
        result = await self._call(gh_repo.update_file, path, message, content, sha, **kwargs)
        return result["commit"].sha

    async def create_review(self, owner: str, repo: str, number: int, body: str, event: str) -> None:
        """Post a review; raises SelfReviewForbidden on the author's own PR."""
        gh_repo = await self._repo(owner, repo)
        pr = await self._call(gh_repo.get_pull, number)
        await self._call(pr.create_review, body=body, event=event)

    async def merge_pull_request(
        self, owner: str, repo: str, number: int, merge_method: str = "merge"
    ) -> Optional[str]:
        """
        Merge a pull request.

        Returns:
            Merge commit SHA
        """
        gh_repo = await self._repo(owner, repo)
        pr = await self._call(gh_repo.get_pull, number)
        status = await self._call(pr.merge, merge_method=merge_method)
        if not status.merged:
            raise GitHubToolError(f"Merge of PR #{number} refused: {status.message}")
        return status.sha

    async def create_issue(self, owner: str, repo: str, title: str, body: str) -> int:
        gh_repo = await self._repo(owner, repo)
        issue = await self._call(gh_repo.create_issue, title=title, body=body)
        return issue.number

    async def list_open_issues(self, owner: str, repo: str) -> List[Dict[str, Any]]:
        """Open issues (pull requests excluded) as number/title/body dicts."""
        gh_repo = await self._repo(owner, repo)

        def fetch():
            return [
                {"number": i.number, "title": i.title, "body": i.body or ""}
                for i in gh_repo.get_issues(state="open")
                if i.pull_request is None
            ]

        return await self._call(fetch)

    async def comment_on_issue(self, owner: str, repo: str, number: int, body: str) -> None:
        gh_repo = await self._repo(owner, repo)
        issue = await self._call(gh_repo.get_issue, number)
        await self._call(issue.create_comment, body)

    async def close_issue(self, owner: str, repo: str, number: int) -> None:
        gh_repo = await self._repo(owner, repo)
        issue = await self._call(gh_repo.get_issue, number)
        await self._call(issue.edit, state="closed", state_reason="completed")

"""Review orchestrator: one pull request from fetch to verdict and merge."""

from collections import OrderedDict
from typing import Dict, List, Optional, Tuple

from ..analysis import CodeAnalyzer, ConflictResolver, language_for, is_code_file
from ..config import ReviewConfig
from ..models import (
    ConflictReport,
    FileChange,
    FileReview,
    FixReport,
    Issue,
    PullRequestInfo,
    ReviewEvent,
    ReviewResult,
    ReviewState,
)
from ..tools import GitHubToolError, SelfReviewForbidden, parse_changed_lines
from ..utils import get_logger, log_transition
from .merge import MergeExecutor, should_merge
from .report import (
    group_by_file,
    is_tracking_issue,
    render_close_comment,
    render_commit_message,
    render_issue_body,
    render_review_body,
    tracking_title,
)

logger = get_logger(__name__)


def determine_event(issues: List[Issue]) -> ReviewEvent:
    """Verdict for a set of reported findings."""
    if any(issue.is_blocking for issue in issues):
        return ReviewEvent.REQUEST_CHANGES
    if not issues:
        return ReviewEvent.APPROVE
    return ReviewEvent.COMMENT


class ReviewOrchestrator:
    """
    Drives the review of a pull request.

    States: FETCH -> CONFLICT_CHECK -> {ABORT_CONFLICT | ANALYZE} ->
    AGGREGATE -> {OWN_PR_REPORT | POST_REVIEW} -> {AUTO_MERGE | DONE}.

    Files are processed one at a time and every GitHub call is awaited
    before the next starts. GitHub failures propagate, except a refused
    self-review, which falls back to the analysis-only report.
    """

    def __init__(
        self,
        github,
        analyzer: Optional[CodeAnalyzer] = None,
        config: Optional[ReviewConfig] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            github: GitHubTool, or any object with the same coroutines
            analyzer: Analyzer owning the issue cache (one is built if omitted)
            config: Review configuration
        """
        self.github = github
        self.config = config or ReviewConfig()
        self.analyzer = analyzer or CodeAnalyzer(config=self.config)
        self.resolver = ConflictResolver()
        self.merge_executor = MergeExecutor(github, self.config)

    # ------------------------------------------------------------------
    # Pull request review
    # ------------------------------------------------------------------

    async def review_pull_request(self, owner: str, repo: str, number: int) -> ReviewResult:
        """
        Review one pull request.

        Args:
            owner: Repository owner
            repo: Repository name
            number: Pull request number

        Returns:
            ReviewResult whose ``state`` is the terminal state reached
        """
        subject = f"{owner}/{repo}#{number}"

        log_transition(logger, subject, ReviewState.FETCH.value)
        pr = await self.github.get_pull_request(owner, repo, number)
        files = await self.github.get_pull_request_files(owner, repo, number)
        acting_login = await self.github.get_authenticated_login()
        logger.info(f"PR #{number} '{pr.title}' by {pr.author}: {len(files)} changed files")

        log_transition(logger, subject, ReviewState.CONFLICT_CHECK.value)
        contents, conflicts, unresolved = await self._check_conflicts(owner, repo, pr, files)
        if unresolved:
            log_transition(logger, subject, ReviewState.ABORT_CONFLICT.value, unresolved)
            return ReviewResult(
                state=ReviewState.ABORT_CONFLICT,
                pull_request=pr,
                conflicts=conflicts,
            )

        log_transition(logger, subject, ReviewState.ANALYZE.value)
        reviews, issues = self._analyze_files(files, contents)

        log_transition(logger, subject, ReviewState.AGGREGATE.value, f"{len(issues)} issues")
        if pr.author == acting_login:
            log_transition(logger, subject, ReviewState.OWN_PR_REPORT.value, "author is the acting identity")
            return self._own_pr_report(pr, reviews, issues, conflicts)

        log_transition(logger, subject, ReviewState.POST_REVIEW.value)
        event = determine_event(issues)
        body = render_review_body(issues, reviews)
        try:
            await self.github.create_review(owner, repo, number, body, event.value)
        except SelfReviewForbidden:
            logger.warning(f"GitHub refused a self-review on PR #{number}, reporting analysis only")
            reviews, issues = self._analyze_files(files, contents)
            log_transition(logger, subject, ReviewState.OWN_PR_REPORT.value, "self-review forbidden")
            return self._own_pr_report(pr, reviews, issues, conflicts)
        logger.info(f"Posted {event.value} review on PR #{number}")

        result = ReviewResult(
            state=ReviewState.DONE,
            pull_request=pr,
            issues=issues,
            files=reviews,
            conflicts=conflicts,
            event=event,
            review_posted=True,
        )

        if self.config.auto_fix and any(issue.has_fix for issue in issues):
            result.fix_report = await self.fix_issues(
                owner, repo, issues, branch=pr.head_ref, close_tracking=False
            )

        if should_merge(issues, self.config):
            log_transition(logger, subject, ReviewState.AUTO_MERGE.value)
            result.merge = await self.merge_executor.merge(owner, repo, pr)
            result.state = ReviewState.AUTO_MERGE
        else:
            log_transition(logger, subject, ReviewState.DONE.value)

        return result

    async def _check_conflicts(
        self,
        owner: str,
        repo: str,
        pr: PullRequestInfo,
        files: List[FileChange],
    ) -> Tuple[Dict[str, str], List[ConflictReport], Optional[str]]:
        """
        Fetch head content of every live file and resolve what can be.

        Stops at the first file whose conflicts cannot be auto-resolved.

        Returns:
            (content by filename, conflict reports, first unresolved filename)
        """
        contents: Dict[str, str] = OrderedDict()
        conflicts: List[ConflictReport] = []

        for change in files:
            if change.status == "removed":
                continue

            content = await self.github.get_file_content(owner, repo, change.filename, ref=pr.head_sha)
            if content is None:
                logger.info(f"Skipping {change.filename}: content not available at {pr.head_sha[:7]}")
                continue

            report = self.resolver.check(content, change.filename)
            if report.has_conflicts:
                conflicts.append(report)
                resolved = self.resolver.try_resolve(content, change.filename)
                if resolved is None:
                    return contents, conflicts, change.filename

                await self._persist_resolution(owner, repo, pr, change.filename, resolved)
                content = resolved

            contents[change.filename] = content

        return contents, conflicts, None

    async def _persist_resolution(
        self, owner: str, repo: str, pr: PullRequestInfo, filename: str, resolved: str
    ) -> None:
        sha = await self.github.get_file_sha(owner, repo, filename, ref=pr.head_ref)
        if sha is None:
            logger.warning(f"No blob for {filename} on {pr.head_ref}, resolution not committed")
            return
        await self.github.update_file_content(
            owner,
            repo,
            filename,
            resolved,
            f"Resolve merge conflicts in {filename}",
            sha,
            branch=pr.head_ref,
        )
        logger.info(f"Committed conflict resolution for {filename} to {pr.head_ref}")

    def _analyze_files(
        self, files: List[FileChange], contents: Dict[str, str]
    ) -> Tuple[List[FileReview], List[Issue]]:
        reviews: List[FileReview] = []
        issues: List[Issue] = []

        for change in files:
            if change.status == "removed":
                continue

            changed_lines = parse_changed_lines(change.patch)
            if not changed_lines:
                logger.debug(f"Skipping {change.filename}: no added lines")
                continue

            content = contents.get(change.filename)
            if content is None:
                continue

            language = language_for(change.filename)
            analysis = self.analyzer.analyze_changed_lines(content, change.filename, language, changed_lines)
            logger.info(f"Analyzed {change.filename}: {len(analysis.issues)} issues on {len(changed_lines)} changed lines")

            reviews.append(FileReview(
                filename=change.filename,
                status=change.status,
                additions=change.additions,
                deletions=change.deletions,
                changed_lines=sorted(changed_lines),
                issues=analysis.issues,
                language=language,
            ))
            issues.extend(analysis.issues)

        return reviews, issues

    def _own_pr_report(
        self,
        pr: PullRequestInfo,
        reviews: List[FileReview],
        issues: List[Issue],
        conflicts: List[ConflictReport],
    ) -> ReviewResult:
        return ReviewResult(
            state=ReviewState.OWN_PR_REPORT,
            pull_request=pr,
            issues=issues,
            files=reviews,
            conflicts=conflicts,
            event=determine_event(issues),
        )

    # ------------------------------------------------------------------
    # Repository sweep
    # ------------------------------------------------------------------

    async def review_repository_sweep(self, owner: str, repo: str) -> ReviewResult:
        """
        Whole-file scan of well-known paths on the default branch.

        Opens one tracking issue when any finding survives filtering.
        Files that are missing, unreadable or not code are skipped.
        """
        subject = f"{owner}/{repo}"
        log_transition(logger, subject, ReviewState.ANALYZE.value, "sweep")

        reviews: List[FileReview] = []
        issues: List[Issue] = []

        for path in OrderedDict.fromkeys(self.config.sweep_paths):
            if not is_code_file(path):
                logger.debug(f"Skipping {path}: not a code file")
                continue

            try:
                content = await self.github.get_file_content(owner, repo, path)
            except GitHubToolError as e:
                logger.warning(f"Skipping {path}: {e}")
                continue
            if content is None:
                continue

            language = language_for(path)
            analysis = self.analyzer.analyze(content, path, language)
            logger.info(f"Analyzed {path}: found {len(analysis.issues)} issues")

            reviews.append(FileReview(
                filename=path,
                status="unchanged",
                issues=analysis.issues,
                language=language,
            ))
            issues.extend(analysis.issues)

        result = ReviewResult(state=ReviewState.DONE, issues=issues, files=reviews)

        if issues:
            title = tracking_title(len(issues))
            result.issue_number = await self.github.create_issue(owner, repo, title, render_issue_body(issues))
            logger.info(f"Created tracking issue #{result.issue_number} with {len(issues)} issues")
        else:
            logger.info(f"Sweep of {subject} found no issues")

        log_transition(logger, subject, ReviewState.DONE.value, "sweep")
        return result

    # ------------------------------------------------------------------
    # Fix workflow
    # ------------------------------------------------------------------

    async def fix_issues(
        self,
        owner: str,
        repo: str,
        issues: List[Issue],
        branch: Optional[str] = None,
        close_tracking: bool = True,
    ) -> FixReport:
        """
        Commit suggested fixes, one commit per changed file.

        Args:
            owner: Repository owner
            repo: Repository name
            issues: Findings to fix; those without a fix are ignored
            branch: Target branch (default branch when omitted)
            close_tracking: Close sweep tracking issues once something was fixed

        Returns:
            FixReport; ``already_fixed`` when no file changed
        """
        report = FixReport()
        by_file = group_by_file(issue for issue in issues if issue.has_fix)
        logger.info(f"Fixing {sum(len(v) for v in by_file.values())} issues across {len(by_file)} files")

        for filename, file_issues in by_file.items():
            try:
                content = await self.github.get_file_content(owner, repo, filename, ref=branch)
                if content is None:
                    logger.info(f"Could not get content for {filename}, skipping")
                    continue

                sha = await self.github.get_file_sha(owner, repo, filename, ref=branch)
                if sha is None:
                    logger.info(f"Could not get SHA for {filename}, skipping")
                    continue

                fix = self.analyzer.apply_fixes(content, file_issues)
                report.applied += fix.applied
                report.skipped += fix.skipped
                if fix.content == content:
                    logger.info(f"No changes needed for {filename}")
                    continue

                message = render_commit_message(filename, fix.fixed)
                await self.github.update_file_content(
                    owner, repo, filename, fix.content, message, sha, branch=branch
                )
            except GitHubToolError as e:
                logger.warning(f"Failed to fix {filename}: {e}")
                continue

            report.fixed_files.append(filename)
            report.fixed_issues.extend(fix.fixed)
            report.commit_messages.append(message)
            logger.info(f"Fixed {fix.applied} issues in {filename}")

        if report.fixed_issues and close_tracking:
            report.closed_issue_numbers = await self.close_tracking_issues(owner, repo, report.fixed_issues)

        return report

    async def close_tracking_issues(self, owner: str, repo: str, fixed: List[Issue]) -> List[int]:
        """
        Comment on and close every open sweep tracking issue.

        Best effort: failures are logged and never raised.

        Returns:
            Numbers of the issues closed
        """
        try:
            open_issues = await self.github.list_open_issues(owner, repo)
        except GitHubToolError as e:
            logger.warning(f"Could not list open issues: {e}")
            return []

        comment = render_close_comment(fixed)
        closed: List[int] = []

        for issue in open_issues:
            if not is_tracking_issue(issue["title"], issue.get("body")):
                continue
            try:
                await self.github.comment_on_issue(owner, repo, issue["number"], comment)
                await self.github.close_issue(owner, repo, issue["number"])
            except GitHubToolError as e:
                logger.warning(f"Failed to close issue #{issue['number']}: {e}")
                continue
            closed.append(issue["number"])
            logger.info(f"Closed tracking issue #{issue['number']}: {issue['title']}")

        return closed

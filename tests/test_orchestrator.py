"""Tests for review orchestration.

- Client-perspective behavior verification
- Given-When-Then structure
- Minimal mocking (only the GitHub API)
"""

import asyncio

import pytest

from pr_triage.config import ReviewConfig
from pr_triage.models import FileChange, PullRequestInfo, ReviewEvent, ReviewState
from pr_triage.orchestrator import ReviewOrchestrator, determine_event
from pr_triage.orchestrator.report import TRACKING_MARKER, TRACKING_TITLE_PREFIX
from pr_triage.tools import GitHubToolError, SelfReviewForbidden


class FakeGitHub:
    """In-memory stand-in for GitHubTool recording every write."""

    def __init__(self, files=None, contents=None, author="alice", login="triage-bot"):
        self.pr = PullRequestInfo(
            number=7,
            title="Add feature",
            author=author,
            head_ref="feature",
            head_sha="abc1234def",
            base_ref="main",
        )
        self.files = files or []
        self.contents = dict(contents or {})
        self.login = login
        self.open_issues = []
        self.review_error = None
        self.fetch_errors = {}

        self.requested = []
        self.reviews = []
        self.updates = []
        self.merged = []
        self.created_issues = []
        self.comments = []
        self.closed = []

    async def get_pull_request(self, owner, repo, number):
        return self.pr

    async def get_pull_request_files(self, owner, repo, number):
        return self.files

    async def get_authenticated_login(self):
        return self.login

    async def get_file_content(self, owner, repo, path, ref=None):
        self.requested.append((path, ref))
        if path in self.fetch_errors:
            raise self.fetch_errors[path]
        return self.contents.get(path)

    async def get_file_sha(self, owner, repo, path, ref=None):
        return f"sha-{path}" if path in self.contents else None

    async def update_file_content(self, owner, repo, path, content, message, sha, branch=None):
        self.updates.append({"path": path, "content": content, "message": message, "sha": sha, "branch": branch})
        self.contents[path] = content
        return "commit-sha"

    async def create_review(self, owner, repo, number, body, event):
        if self.review_error is not None:
            raise self.review_error
        self.reviews.append({"body": body, "event": event})

    async def merge_pull_request(self, owner, repo, number, merge_method="merge"):
        self.merged.append((number, merge_method))
        return "merge-sha"

    async def create_issue(self, owner, repo, title, body):
        self.created_issues.append({"title": title, "body": body})
        return 42

    async def list_open_issues(self, owner, repo):
        return self.open_issues

    async def comment_on_issue(self, owner, repo, number, body):
        self.comments.append((number, body))

    async def close_issue(self, owner, repo, number):
        self.closed.append(number)


def pr_with_line(added_line, filename="src/app.js"):
    """A PR adding ``added_line`` as line 2 of ``filename``."""
    content = f"const total = 1;\n{added_line}\n"
    patch = f"@@ -1,1 +1,2 @@\n const total = 1;\n+{added_line}"
    files = [FileChange(filename=filename, status="modified", additions=1, patch=patch)]
    return FakeGitHub(files=files, contents={filename: content})


def review(github, **config):
    orchestrator = ReviewOrchestrator(github, config=ReviewConfig(**config))
    return asyncio.run(orchestrator.review_pull_request("acme", "widgets", 7))


class TestReviewVerdicts:
    """Tests for the posted review verdict."""

    def test_clean_change_is_approved(self):
        """Given a change with no findings, the review approves."""
        # Given
        github = pr_with_line("export default total;")

        # When
        result = review(github)

        # Then
        assert result.state == ReviewState.DONE
        assert result.event == ReviewEvent.APPROVE
        assert github.reviews[0]["event"] == "APPROVE"
        assert "Ready to merge" in github.reviews[0]["body"]

    def test_security_finding_requests_changes(self):
        """Given dynamic code execution on a changed line, changes are requested."""
        # Given
        github = pr_with_line("eval(userInput);")

        # When
        result = review(github, auto_merge=True)

        # Then
        assert result.event == ReviewEvent.REQUEST_CHANGES
        assert result.review_posted is True
        assert github.merged == []
        assert result.state == ReviewState.DONE

    def test_medium_finding_comments_and_merges(self):
        """Given only a medium finding and auto-merge on, the PR is merged."""
        # Given
        github = pr_with_line("console.log(total);")

        # When
        result = review(github, auto_merge=True, merge_method="squash")

        # Then
        assert result.event == ReviewEvent.COMMENT
        assert result.state == ReviewState.AUTO_MERGE
        assert result.auto_merged is True
        assert github.merged == [(7, "squash")]

    def test_strict_mode_blocks_merge_on_medium(self):
        github = pr_with_line("console.log(total);")

        result = review(github, auto_merge=True, strict_mode=True)

        assert result.state == ReviewState.DONE
        assert github.merged == []

    def test_unchanged_lines_do_not_report(self):
        """Given a finding on a context line, it is not reported."""
        # Given - line 1 has eval but only line 2 was added
        github = FakeGitHub(
            files=[FileChange(
                filename="src/app.js",
                status="modified",
                patch="@@ -1,1 +1,2 @@\n eval(x);\n+export default x;",
            )],
            contents={"src/app.js": "eval(x);\nexport default x;\n"},
        )

        # When
        result = review(github)

        # Then
        assert result.issues == []
        assert result.event == ReviewEvent.APPROVE


class TestOwnPullRequest:
    """Tests for reviews on the acting identity's own PR."""

    def test_own_pr_is_not_reviewed(self):
        """Given the author is the token owner, nothing is posted."""
        # Given
        github = pr_with_line("eval(userInput);")
        github.login = "alice"

        # When
        result = review(github)

        # Then
        assert result.state == ReviewState.OWN_PR_REPORT
        assert result.event == ReviewEvent.REQUEST_CHANGES
        assert result.issues_found == 1
        assert github.reviews == []

    def test_self_review_rejection_falls_back_to_report(self):
        """Given GitHub refusing the review as a self-review, report only."""
        # Given
        github = pr_with_line("eval(userInput);")
        github.review_error = SelfReviewForbidden("Can not approve your own pull request", status=422)

        # When
        result = review(github, auto_merge=True)

        # Then
        assert result.state == ReviewState.OWN_PR_REPORT
        assert result.review_posted is False
        assert result.issues_found == 1
        assert github.merged == []

    def test_other_review_errors_propagate(self):
        github = pr_with_line("export default total;")
        github.review_error = GitHubToolError("GitHub API error: 500 Server Error", status=500)

        with pytest.raises(GitHubToolError):
            review(github)


class TestConflicts:
    """Tests for the conflict gate."""

    def test_unresolvable_conflict_aborts(self):
        """Given sides that genuinely differ, the review aborts with no review."""
        # Given
        content = "<<<<<<< HEAD\nconst a = 1;\n=======\nconst a = 2;\n>>>>>>> main\n"
        github = FakeGitHub(
            files=[FileChange(filename="src/app.js", status="modified", patch="@@ -1 +1,2 @@\n+x")],
            contents={"src/app.js": content},
        )

        # When
        result = review(github)

        # Then
        assert result.state == ReviewState.ABORT_CONFLICT
        assert result.success is False
        assert result.has_unresolved_conflicts is True
        assert github.reviews == []
        assert github.updates == []

    def test_resolvable_conflict_is_committed_to_head_branch(self):
        """Given a blank side, the resolution is committed and review continues."""
        # Given
        content = "const a = 1;\n<<<<<<< HEAD\n=======\nuse(a);\n>>>>>>> main\nexport default a;"
        github = FakeGitHub(
            files=[FileChange(
                filename="src/app.js",
                status="modified",
                patch="@@ -1,1 +1,3 @@\n const a = 1;\n+use(a);\n+export default a;",
            )],
            contents={"src/app.js": content},
        )

        # When
        result = review(github)

        # Then
        assert len(github.updates) == 1
        update = github.updates[0]
        assert update["branch"] == "feature"
        assert update["content"] == "const a = 1;\nuse(a);\nexport default a;"
        assert update["sha"] == "sha-src/app.js"
        assert result.state == ReviewState.DONE
        assert result.review_posted is True

    def test_content_fetched_at_head_sha(self):
        github = pr_with_line("export default total;")

        review(github)

        assert github.requested == [("src/app.js", "abc1234def")]


class TestFileSelection:
    def test_removed_and_missing_files_are_skipped(self):
        """Given a removed file and one without content, only live files are analyzed."""
        # Given
        github = pr_with_line("export default total;")
        github.files += [
            FileChange(filename="src/old.js", status="removed", patch="@@ -1 +0,0 @@\n-gone();"),
            FileChange(filename="src/gone.js", status="modified", patch="@@ -0,0 +1 @@\n+eval(x);"),
        ]

        # When
        result = review(github)

        # Then
        assert [f.filename for f in result.files] == ["src/app.js"]
        assert ("src/old.js", "abc1234def") not in github.requested
        assert result.event == ReviewEvent.APPROVE


class TestAutoFix:
    def test_fixes_pushed_to_head_branch(self):
        """Given auto-fix on, fixable findings are committed to the PR branch."""
        # Given
        github = pr_with_line("console.log(total);")

        # When
        result = review(github, auto_fix=True)

        # Then
        assert result.fix_report.fixed_files == ["src/app.js"]
        assert github.updates[0]["branch"] == "feature"
        assert github.updates[0]["content"] == "const total = 1;\n// console.log(total);\n"
        assert github.closed == []


class TestRepositorySweep:
    """Tests for the periodic whole-file sweep."""

    def test_sweep_opens_tracking_issue(self):
        """Given findings in a swept file, one tracking issue is created."""
        # Given
        github = FakeGitHub(contents={"src/index.js": "var x = 1;\nuse(x);"})
        config = ReviewConfig(sweep_paths=["src/index.js", "README.md", "src/index.js", "missing.js"])
        orchestrator = ReviewOrchestrator(github, config=config)

        # When
        result = asyncio.run(orchestrator.review_repository_sweep("acme", "widgets"))

        # Then
        assert [path for path, _ in github.requested] == ["src/index.js", "missing.js"]
        assert len(github.created_issues) == 1
        created = github.created_issues[0]
        assert created["title"].startswith(TRACKING_TITLE_PREFIX)
        assert TRACKING_MARKER in created["body"]
        assert result.issue_number == 42
        assert [f.status for f in result.files] == ["unchanged"]

    def test_clean_sweep_opens_nothing(self):
        github = FakeGitHub(contents={"src/index.js": "const x = 1;\nuse(x);"})
        orchestrator = ReviewOrchestrator(github, config=ReviewConfig(sweep_paths=["src/index.js"]))

        result = asyncio.run(orchestrator.review_repository_sweep("acme", "widgets"))

        assert result.issues == []
        assert result.issue_number is None
        assert github.created_issues == []

    def test_unreadable_file_is_skipped(self):
        github = FakeGitHub(contents={"app.js": "var y = 2;\nuse(y);"})
        github.fetch_errors["index.js"] = GitHubToolError("GitHub API error: 500", status=500)
        orchestrator = ReviewOrchestrator(github, config=ReviewConfig(sweep_paths=["index.js", "app.js"]))

        result = asyncio.run(orchestrator.review_repository_sweep("acme", "widgets"))

        assert [f.filename for f in result.files] == ["app.js"]


class TestFixIssues:
    """Tests for the fix workflow."""

    def sweep_findings(self, content):
        github = FakeGitHub(contents={"src/a.js": content})
        orchestrator = ReviewOrchestrator(github, config=ReviewConfig(sweep_paths=["src/a.js"]))
        issues = asyncio.run(orchestrator.review_repository_sweep("acme", "widgets")).issues
        return github, orchestrator, issues

    def test_fix_commits_and_closes_tracking_issues(self):
        """Given fixable findings, one commit lands and only tracking issues close."""
        # Given
        github, orchestrator, issues = self.sweep_findings("var a = 1;\nfoo(a);")
        github.open_issues = [
            {"number": 5, "title": "Daily Review: 1 issues found in default branch", "body": ""},
            {"number": 6, "title": "Bug report", "body": "Something broke"},
        ]

        # When
        report = asyncio.run(orchestrator.fix_issues("acme", "widgets", issues))

        # Then
        assert github.contents["src/a.js"] == "let a = 1;\nfoo(a);"
        assert report.fixed_files == ["src/a.js"]
        assert report.commit_messages[0].startswith("Fix 1 issues in src/a.js")
        assert report.closed_issue_numbers == [5]
        assert github.closed == [5]
        assert github.comments[0][0] == 5

    def test_already_fixed_content_is_not_committed(self):
        """Given the file changed since analysis, nothing is committed or closed."""
        # Given
        github, orchestrator, issues = self.sweep_findings("var a = 1;\nfoo(a);")
        github.contents["src/a.js"] = "let a = 1;\nfoo(a);"
        github.open_issues = [{"number": 5, "title": "Daily Review: 1 issues", "body": ""}]

        # When
        report = asyncio.run(orchestrator.fix_issues("acme", "widgets", issues))

        # Then
        assert report.already_fixed is True
        assert report.skipped == 1
        assert github.updates == []
        assert github.closed == []


class TestDetermineEvent:
    def test_no_issues_approves(self):
        assert determine_event([]) == ReviewEvent.APPROVE

"""Tests for the command line entry point."""

import sys

import pytest

from pr_triage.main import main, EXIT_UNRESOLVED

UNRESOLVABLE = "<<<<<<< HEAD\nconst a = 1;\n=======\nconst a = 2;\n>>>>>>> main\n"


def run(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["pr-triage", *argv])
    with pytest.raises(SystemExit) as exc:
        main()
    return exc.value.code


class TestLocalCommands:
    """Tests for analyze, fix and resolve on local files."""

    def test_analyze_prints_findings(self, monkeypatch, tmp_path, capsys):
        # Given
        path = tmp_path / "app.js"
        path.write_text("eval(x);\n", encoding="utf-8")

        # When
        code = run(monkeypatch, "analyze", str(path))

        # Then
        assert code == 0
        assert ":1: high no-eval:" in capsys.readouterr().out

    def test_analyze_with_diff_scopes_lines(self, monkeypatch, tmp_path, capsys):
        """Given a diff adding only line 2, line 1's finding is not printed."""
        # Given
        path = tmp_path / "app.js"
        path.write_text("eval(x);\nconsole.log(x);\n", encoding="utf-8")
        diff = tmp_path / "change.patch"
        diff.write_text("@@ -1,1 +1,2 @@\n eval(x);\n+console.log(x);\n", encoding="utf-8")

        # When
        code = run(monkeypatch, "analyze", str(path), "--diff", str(diff))

        # Then
        out = capsys.readouterr().out
        assert code == 0
        assert "no-console" in out
        assert "no-eval" not in out

    def test_analyze_with_multi_file_diff_uses_own_section(self, monkeypatch, tmp_path, capsys):
        """Given a git diff touching two files, only the analyzed file's added lines report."""
        # Given
        (tmp_path / "src").mkdir()
        path = tmp_path / "src" / "app.js"
        path.write_text("const a = 1;\neval(x);\nconsole.log(a);\n", encoding="utf-8")
        diff = tmp_path / "change.patch"
        diff.write_text(
            "diff --git a/src/other.js b/src/other.js\n"
            "--- a/src/other.js\n"
            "+++ b/src/other.js\n"
            "@@ -1,1 +1,2 @@\n"
            " first();\n"
            "+second();\n"
            "diff --git a/src/app.js b/src/app.js\n"
            "--- a/src/app.js\n"
            "+++ b/src/app.js\n"
            "@@ -1,2 +1,3 @@\n"
            " const a = 1;\n"
            " eval(x);\n"
            "+console.log(a);\n",
            encoding="utf-8",
        )

        # When
        code = run(monkeypatch, "analyze", str(path), "--diff", str(diff))

        # Then
        out = capsys.readouterr().out
        assert code == 0
        assert "no-console" in out
        assert "no-eval" not in out

    def test_analyze_with_diff_of_other_files_reports_nothing(self, monkeypatch, tmp_path, capsys):
        path = tmp_path / "app.js"
        path.write_text("eval(x);\n", encoding="utf-8")
        diff = tmp_path / "change.patch"
        diff.write_text(
            "diff --git a/lib/util.js b/lib/util.js\n"
            "@@ -0,0 +1,1 @@\n"
            "+eval(y);\n",
            encoding="utf-8",
        )

        code = run(monkeypatch, "analyze", str(path), "--diff", str(diff))

        assert code == 0
        assert "no-eval" not in capsys.readouterr().out

    def test_fix_rewrites_file(self, monkeypatch, tmp_path, capsys):
        path = tmp_path / "app.js"
        path.write_text("var a = 1;\nfoo(a);\n", encoding="utf-8")

        code = run(monkeypatch, "fix", str(path))

        assert code == 0
        assert path.read_text(encoding="utf-8") == "let a = 1;\nfoo(a);\n"
        assert "1 fixes applied, 0 skipped" in capsys.readouterr().err

    def test_fix_dry_run_leaves_file(self, monkeypatch, tmp_path):
        path = tmp_path / "app.js"
        path.write_text("var a = 1;\nfoo(a);\n", encoding="utf-8")

        run(monkeypatch, "fix", str(path), "--dry-run")

        assert path.read_text(encoding="utf-8") == "var a = 1;\nfoo(a);\n"

    def test_resolve_refuses_real_disagreement(self, monkeypatch, tmp_path):
        """Given sides that differ, the file is untouched and the exit code signals it."""
        # Given
        path = tmp_path / "app.js"
        path.write_text(UNRESOLVABLE, encoding="utf-8")

        # When
        code = run(monkeypatch, "resolve", str(path))

        # Then
        assert code == EXIT_UNRESOLVED
        assert path.read_text(encoding="utf-8") == UNRESOLVABLE

    def test_resolve_force_keeps_both_sides(self, monkeypatch, tmp_path):
        path = tmp_path / "app.js"
        path.write_text(UNRESOLVABLE, encoding="utf-8")

        code = run(monkeypatch, "resolve", str(path), "--force")

        assert code == 0
        resolved = path.read_text(encoding="utf-8")
        assert "// Merged from both branches:" in resolved
        assert "<<<<<<<" not in resolved


class TestRemoteCommands:
    def test_review_requires_repository(self, monkeypatch):
        monkeypatch.delenv("GITHUB_REPOSITORY", raising=False)

        assert run(monkeypatch, "review", "--pr-number", "3") == 1

    def test_no_command_prints_help(self, monkeypatch):
        assert run(monkeypatch) == 1

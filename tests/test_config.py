"""Tests for configuration loading."""

import pytest

from pr_triage.config import ReviewConfig, DEFAULT_SWEEP_PATHS


class TestFromEnv:
    """Tests for ReviewConfig.from_env."""

    def test_reads_workflow_environment(self, monkeypatch):
        # Given
        monkeypatch.setenv("GITHUB_REPOSITORY", "acme/widgets")
        monkeypatch.setenv("PR_NUMBER", "17")
        monkeypatch.setenv("GITHUB_TOKEN", "token-123")
        monkeypatch.setenv("AUTO_MERGE", "true")
        monkeypatch.setenv("STRICT_MODE", "TRUE")
        monkeypatch.setenv("MERGE_METHOD", "squash")

        # When
        config = ReviewConfig.from_env()

        # Then
        assert config.repo == "acme/widgets"
        assert config.pr_number == 17
        assert config.github_token == "token-123"
        assert config.auto_merge is True
        assert config.strict_mode is True
        assert config.merge_method == "squash"

    def test_defaults_when_unset(self, monkeypatch):
        for name in ("GITHUB_REPOSITORY", "PR_NUMBER", "AUTO_MERGE", "AUTO_FIX", "REPORT_LOW"):
            monkeypatch.delenv(name, raising=False)

        config = ReviewConfig.from_env()

        assert config.repo == ""
        assert config.pr_number == 0
        assert config.auto_merge is False
        assert config.auto_fix is False
        assert config.report_low is False
        assert config.sweep_paths == DEFAULT_SWEEP_PATHS


class TestOwnerAndName:
    def test_split(self):
        assert ReviewConfig(repo="acme/widgets").owner_and_name == ("acme", "widgets")

    def test_missing_owner(self):
        with pytest.raises(ValueError):
            ReviewConfig(repo="widgets").owner_and_name

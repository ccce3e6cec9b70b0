"""Configuration for PR Triage."""

from dataclasses import dataclass, field
from typing import List, Optional
import os


# Well-known entry points scanned by the periodic sweep
DEFAULT_SWEEP_PATHS = [
    "src/index.js",
    "src/index.ts",
    "src/App.js",
    "src/App.tsx",
    "src/main.tsx",
    "src/main.js",
    "index.js",
    "index.ts",
    "app.js",
    "app.ts",
    "server.js",
    "server.ts",
    "package.json",
    "README.md",
    "tsconfig.json",
    "webpack.config.js",
    "vite.config.ts",
    "vite.config.js",
]


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() == "true"


@dataclass
class ReviewConfig:
    """Configuration for the review bot."""

    # GitHub settings
    repo: str = ""
    pr_number: int = 0
    github_token: Optional[str] = None

    # Workflow
    auto_merge: bool = False     # Merge when nothing blocks
    auto_fix: bool = False       # Push fixable suggestions to the head branch
    strict_mode: bool = False    # Medium findings also block auto-merge
    merge_method: str = "merge"  # merge, squash, rebase

    # Severity filtering
    report_low: bool = False     # Skip low severity by default

    # Rule tuning
    line_width: int = 80
    context_window: int = 10

    sweep_paths: List[str] = field(default_factory=lambda: list(DEFAULT_SWEEP_PATHS))

    @property
    def owner_and_name(self) -> tuple:
        """Split ``owner/repo`` into its two parts."""
        if "/" not in self.repo:
            raise ValueError(f"Repository must be in owner/repo format, got {self.repo!r}")
        owner, name = self.repo.split("/", 1)
        return owner, name

    @classmethod
    def from_env(cls) -> "ReviewConfig":
        """Create config from environment variables."""
        return cls(
            repo=os.environ.get("GITHUB_REPOSITORY", ""),
            pr_number=int(os.environ.get("PR_NUMBER", "0")),
            github_token=os.environ.get("GITHUB_TOKEN"),
            auto_merge=_env_flag("AUTO_MERGE"),
            auto_fix=_env_flag("AUTO_FIX"),
            strict_mode=_env_flag("STRICT_MODE"),
            merge_method=os.environ.get("MERGE_METHOD", "merge"),
            report_low=_env_flag("REPORT_LOW"),
        )

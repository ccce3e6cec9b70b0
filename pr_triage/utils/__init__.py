"""Utility functions."""

from .logging import setup_logging, get_logger, log_transition
from .metrics import (
    ReviewScores,
    performance_score,
    security_score,
    quality_score,
    calculate_scores,
    cyclomatic_complexity,
    maintainability_index,
    format_scores_report,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "log_transition",
    "ReviewScores",
    "performance_score",
    "security_score",
    "quality_score",
    "calculate_scores",
    "cyclomatic_complexity",
    "maintainability_index",
    "format_scores_report",
]

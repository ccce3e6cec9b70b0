"""Logging utilities."""

import logging
import sys
from typing import Optional

LOGGER_NAME = "pr_triage"

# Chatty client libraries, kept at WARNING unless running with --debug
_THIRD_PARTY_LOGGERS = ("github", "urllib3")


def setup_logging(
    level: int = logging.INFO,
    format_str: Optional[str] = None
) -> logging.Logger:
    """
    Setup logging for the triage bot.

    Args:
        level: Logging level (default: INFO)
        format_str: Custom format string

    Returns:
        Configured package logger
    """
    if format_str is None:
        format_str = "[%(asctime)s] %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    third_party_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in _THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    return logger


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Get a logger under the package namespace."""
    if name != LOGGER_NAME and not name.startswith(LOGGER_NAME + "."):
        name = f"{LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def log_transition(logger: logging.Logger, subject: str, state: str, detail: str = "") -> None:
    """Log one orchestrator state change in a greppable shape."""
    suffix = f" ({detail})" if detail else ""
    logger.info(f"[{subject}] -> {state.upper()}{suffix}")

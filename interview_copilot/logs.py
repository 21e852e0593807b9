"""Logging setup shared by every module."""

import logging
import sys

ROOT_LOGGER = "interview_copilot"
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def configure_logging(level: str = "info") -> None:
    """Install the stderr handler on the package logger (once) and set its level."""
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str) -> logging.Logger:
    """Get a child logger of the package logger, e.g. ``get_logger("answer")``."""
    logger = logging.getLogger(f"{ROOT_LOGGER}.{name}")
    if not logging.getLogger(ROOT_LOGGER).handlers:
        configure_logging()
    return logger


def preview(text: str, limit: int = 100) -> str:
    """Shorten transcript text for log lines."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."

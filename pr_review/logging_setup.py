"""Logging utilities."""

from __future__ import annotations

import logging
import sys

LOGGER_NAME = "pr_review"
DEFAULT_LOG_FORMAT = "[%(asctime)s] %(levelname)s - %(message)s"


def setup_logging(level: int = logging.INFO, format_str: str | None = None) -> logging.Logger:
    """Configure and return the tool logger.

    Handlers are attached to the `pr_review` logger only, so repeated calls
    within one process replace rather than duplicate output.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(format_str or DEFAULT_LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger

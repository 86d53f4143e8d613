"""Logging helpers for the blastpoll CLI."""

from __future__ import annotations

import logging

LOGGER_NAME = "blastpoll"


def configure_logging(verbose: bool = False) -> logging.Logger:
    """Configure root logger and return the package logger."""

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    # urllib3 stays at WARNING even with --verbose.
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return logger


def get_logger() -> logging.Logger:
    """Return the package logger."""

    return logging.getLogger(LOGGER_NAME)

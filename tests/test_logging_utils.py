"""Tests for the logging helpers."""

from __future__ import annotations

import logging

from blastpoll.logging_utils import LOGGER_NAME, configure_logging, get_logger


def test_configure_logging_sets_package_level() -> None:
    logger = configure_logging(verbose=True)
    assert logger is get_logger()
    assert logger.name == LOGGER_NAME
    assert logger.level == logging.DEBUG
    assert logging.getLogger("urllib3").level == logging.WARNING

    assert configure_logging().level == logging.INFO


def test_module_loggers_are_children_of_the_package_logger() -> None:
    package_logger = get_logger()
    assert logging.getLogger("blastpoll.poller").parent is package_logger

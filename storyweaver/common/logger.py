"""
Logger hierarchy for StoryWeaver.

Library modules only ask for loggers; handlers are installed by the entry point
through :func:`configure_logging`.
"""

from __future__ import annotations

import logging
import sys

ROOT_LOGGER_NAME = "storyweaver"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%H:%M:%S"


def get_logger(name: str) -> logging.Logger:
    """
    Return a child logger (e.g. ``storyweaver.pipeline``).
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Attach a single console handler to the package logger."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if isinstance(level, str):
        level = level.upper()
    logger.setLevel(level)

    # Prevent duplicate handlers when called more than once.
    for handler in list(logger.handlers):
        if getattr(handler, "_storyweaver_console", False):
            logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    console_handler._storyweaver_console = True  # type: ignore[attr-defined]
    logger.addHandler(console_handler)
    return logger

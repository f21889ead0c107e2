"""
Unified logging for spreadsheet_seeder.

Usage:
    from spreadsheet_seeder.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Loaded workbook: %s", filename)
    logger.debug("Skipping sheet %s", title)
"""

import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "spreadsheet_seeder"

# Default log format with timestamp, level, and module name
DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LEVEL = logging.INFO

_root_configured = False


def _configure_root_logger() -> None:
    """
    Attach a stdout handler to the package root logger.

    Runs once; guarded by the module-level _root_configured flag.
    """
    global _root_configured
    if _root_configured:
        return

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(DEFAULT_LEVEL)
    console_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT))

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(DEFAULT_LEVEL)
    root_logger.addHandler(console_handler)
    root_logger.propagate = False

    _root_configured = True


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Return the logger for ``name``, configuring the package root on first use.

    Args:
        name: logger name, normally the calling module's ``__name__``
        level: optional level; the root level (INFO) applies otherwise
    """
    _configure_root_logger()

    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger


def set_level(level: int, logger_name: Optional[str] = None) -> None:
    """
    Set the level of one logger, or of the whole package when no name is given.

    Example:
        set_level(logging.DEBUG)                                   # every module
        set_level(logging.DEBUG, "spreadsheet_seeder.sources.file")  # one module
    """
    logging.getLogger(logger_name or ROOT_LOGGER_NAME).setLevel(level)

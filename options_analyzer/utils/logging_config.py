"""Logging setup for the options analyzer.

Every module logs under the ``options_analyzer`` namespace through
``get_logger``. Console output goes to stderr so it never interleaves with
the chain tables printed on stdout.
"""

import logging
import sys
from typing import Optional
from pathlib import Path

ROOT_LOGGER = "options_analyzer"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

CONSOLE_FORMAT = '%(levelname)s %(name)s: %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s'


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
) -> logging.Logger:
    """Configure the analyzer's logger for one CLI run.

    Calling it again replaces the handlers of the previous call.

    Args:
        log_level: One of LOG_LEVELS, case-insensitive
        log_file: Optional path to an appended log file (parent dirs are created)
        log_format: Optional format for the console handler

    Returns:
        The ``options_analyzer`` logger

    Raises:
        ValueError: For an unknown level name

    Example:
        >>> logger = setup_logging(log_level="DEBUG", log_file="logs/analyzer.log")
        >>> logger.info("Analyzing chain for %s", "SPY")
    """
    level = log_level.upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"Unknown log level: {log_level!r}")

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter(log_format or CONSOLE_FORMAT))
    logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode='a')
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for ``options_analyzer.<name>``, or the package logger itself.

    Example:
        >>> logger = get_logger("tradier")
        >>> logger.debug("Fetching chain for %s", "2025-03-21")
    """
    if name:
        return logging.getLogger(f"{ROOT_LOGGER}.{name}")
    return logging.getLogger(ROOT_LOGGER)

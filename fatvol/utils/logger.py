"""Logging helpers for fatvol"""

import logging
import sys
from typing import Optional

from pythonjsonlogger.json import JsonFormatter

ROOT_LOGGER = 'fatvol'
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def get_logger(name: str) -> logging.Logger:
    """Return a logger for a fatvol module."""
    return logging.getLogger(name)


def setup_logging(level: str = 'INFO', fmt: Optional[str] = None,
                  json_format: bool = False) -> logging.Logger:
    """
    Configure the fatvol logger with a single stream handler.

    Args:
        level: Log level name
        fmt: Format string for records
        json_format: Emit one JSON object per record instead of plain text

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    fmt = fmt or DEFAULT_LOG_FORMAT

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    if json_format:
        handler.setFormatter(JsonFormatter(fmt))
    else:
        handler.setFormatter(logging.Formatter(fmt))

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger

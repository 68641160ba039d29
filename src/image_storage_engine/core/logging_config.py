"""Logging setup shared by every component of the storage engine.

All loggers live under the ``image-storage-engine`` namespace. Only the
package logger owns a handler; component loggers propagate to it, so a single
``setup_logger`` call sets level and format for the whole engine.
"""

import os
import sys
import logging
from typing import Optional

DEFAULT_LOGGER_NAME = "image-storage-engine"

FORMATS = {
    "structured": (
        "%(asctime)s | %(name)s | %(levelname)-8s | "
        "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s"
    ),
    "simple": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    resolved = logging.getLevelName(name)
    # Unknown names come back as "Level <name>".
    return resolved if isinstance(resolved, int) else logging.INFO


def _build_formatter(format_type: Optional[str]) -> logging.Formatter:
    name = (os.getenv("LOG_FORMAT") or format_type or "structured").lower()
    return logging.Formatter(FORMATS.get(name, FORMATS["structured"]), datefmt=DATE_FORMAT)


def setup_logger(
    level: Optional[str] = None, format_type: Optional[str] = None
) -> logging.Logger:
    """
    Configure the package logger and return it.

    Args:
        level: Level name (defaults to env var or INFO)
        format_type: "structured" or "simple" (defaults to structured)

    Environment Variables:
        LOG_LEVEL: Level used when ``level`` is not given
        LOG_FORMAT: Format type; takes precedence over ``format_type``

    Calling it again re-applies level and format to the existing handler.
    """
    logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    logger.setLevel(_resolve_level(level))

    if not logger.handlers:
        logger.addHandler(logging.StreamHandler(sys.stdout))
    formatter = _build_formatter(format_type)
    for handler in logger.handlers:
        handler.setFormatter(formatter)

    logger.propagate = False
    return logger


def get_logger(component: Optional[str] = None) -> logging.Logger:
    """
    Return the logger for ``component``, nested under the package logger.

    ``get_logger("gcs")`` is ``image-storage-engine.gcs``. Component loggers
    carry no handler or level of their own.
    """
    package_logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    if not package_logger.handlers:
        setup_logger()

    if not component or component == DEFAULT_LOGGER_NAME:
        return package_logger
    if component.startswith(DEFAULT_LOGGER_NAME + "."):
        return logging.getLogger(component)
    return package_logger.getChild(component)


logger = setup_logger()

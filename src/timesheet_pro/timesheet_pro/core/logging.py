"""Centralized logging configuration.

Every module logs through ``logging.getLogger(__name__)``; this module only
installs the root handler once at application start.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger with a single stdout handler.

    Args:
        level: Level name such as ``"DEBUG"`` or ``"INFO"``.
    """
    numeric_level = getattr(logging, str(level).upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(numeric_level)

    # Remove existing handlers so repeated app factories do not duplicate output
    root.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(console_handler)

    logging.getLogger(__name__).info("Logging configured with level: %s", logging.getLevelName(numeric_level))
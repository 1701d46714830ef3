"""
Logging setup for the sync engine.

Usage:
    from src.sync_engine.log import setup_logging

    setup_logging("DEBUG")
"""

import logging
import sys
from typing import Union

ROOT_LOGGER_NAME = "src.sync_engine"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: Union[str, int] = "INFO") -> logging.Logger:
    """
    Configure the engine's root logger.

    Safe to call more than once; only one handler is ever attached.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)

    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    return root
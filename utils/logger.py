"""
utils/logger.py
---------------
Logging setup for the persistence layer.

Modules call `get_logger(__name__)`; the first call installs a single
stdout handler on the root logger. Entry points may call `configure()`
themselves to pick the level before anything logs.
"""

import logging
import sys
from typing import Optional

from config import LOG_LEVEL

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_handler: Optional[logging.Handler] = None


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure(level: Optional[str] = None) -> None:
    """
    Install the stdout handler (once) and set the root level.

    Args:
        level: Level name such as "DEBUG"; defaults to LOG_LEVEL.
            Unknown names fall back to INFO.
    """
    global _handler
    name = level or LOG_LEVEL
    root = logging.getLogger()
    if _handler is None:
        _handler = logging.StreamHandler(sys.stdout)
        _handler.setFormatter(logging.Formatter(_LOG_FORMAT, _DATE_FORMAT))
        root.addHandler(_handler)
    root.setLevel(_resolve_level(name))
    if _resolve_level(name) == logging.INFO and name.upper() != "INFO":
        root.warning(f"Unknown log level {name!r}, using INFO.")


def get_logger(name: str) -> logging.Logger:
    """Named logger; configures logging on first use."""
    if _handler is None:
        configure()
    return logging.getLogger(name)

# src/utils/logger.py
import logging
import os
import sys
from typing import Optional

DEFAULT_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s]: %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"

_file_handler: Optional[logging.Handler] = None


def get_file_handler() -> Optional[logging.Handler]:
    """Shared handler writing every component logger to LOG_FILE (default app.log).

    An empty LOG_FILE disables file logging.
    """
    global _file_handler
    path = os.getenv("LOG_FILE", "app.log")
    if not path:
        return None
    if _file_handler is None:
        _file_handler = logging.FileHandler(path)
        _file_handler.setLevel(logging.INFO)
        _file_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT))
    return _file_handler


def _resolve_level(level: Optional[int]) -> int:
    if level is not None:
        return level
    env_level = os.getenv("LOG_LEVEL", "INFO").upper()
    return getattr(logging, env_level, logging.INFO)


def setup_logger(
    name: str,
    level: Optional[int] = None,
    format_string: Optional[str] = None,
    datefmt: Optional[str] = None,
) -> logging.Logger:
    """
    Return a named stdout (and app.log) logger shared by a service, route module or script.

    Args:
        name: Upper-case component name, e.g. "PRIVATE_NOTE_SERVICE"
        level: Logging level; falls back to the LOG_LEVEL env var, then INFO
        format_string: Custom format string for log messages
        datefmt: Custom date format string

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Repeated imports must not stack handlers
    if logger.handlers:
        return logger

    resolved_level = _resolve_level(level)
    logger.setLevel(resolved_level)

    formatter = logging.Formatter(
        format_string or DEFAULT_FORMAT, datefmt=datefmt or DEFAULT_DATEFMT
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(resolved_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    file_handler = get_file_handler()
    if file_handler is not None:
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger


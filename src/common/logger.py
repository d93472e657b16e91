"""
Logging setup shared by every module.
"""

import logging
import sys
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Loggers handed out by setup_logger, so set_level() can reach all of them
_loggers = {}
_level = logging.INFO


def setup_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Get a module logger with the project's console handler attached.

    Args:
        name: Logger name, normally __name__
        level: Optional level override (defaults to the global level)

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    logger.setLevel(level if level is not None else _level)
    _loggers[name] = logger
    return logger


def set_level(level) -> None:
    """
    Change the level of every logger created through setup_logger.

    Args:
        level: logging level as int or name ('DEBUG', 'INFO', ...)
    """
    global _level

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")

    _level = level
    for logger in _loggers.values():
        logger.setLevel(level)

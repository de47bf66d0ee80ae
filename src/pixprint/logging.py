import logging
import os
import sys
from typing import Optional

LOG_LEVEL_ENV = 'PIXPRINT_LOG_LEVEL'
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _default_level(name: str) -> int:
    # The CLI reports progress; library modules only warn.
    return logging.INFO if name.endswith('.cli') else logging.WARNING


def resolve_level(value: Optional[str], default: int) -> int:
    """Turn a level name ('debug') or number ('10') into a logging level."""
    if not value:
        return default
    value = value.strip()
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else default


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    # stdout carries fingerprints and groups, so diagnostics go to stderr.
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

    logger.setLevel(resolve_level(os.getenv(LOG_LEVEL_ENV), _default_level(name)))
    return logger


def set_package_level(level: int) -> None:
    """Apply ``level`` to every pixprint logger created so far."""
    for name, logger in logging.Logger.manager.loggerDict.items():
        if name.startswith('pixprint') and isinstance(logger, logging.Logger):
            logger.setLevel(level)

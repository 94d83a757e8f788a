"""Logging configuration for cushare.

Reports go to stdout, so log records are written to stderr.
"""

import logging
import os
import sys
from typing import Optional

LOG_LEVEL_ENV = "CUSHARE_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _get_log_level_from_env() -> int:
    """Get log level from environment variable."""
    env_level = os.environ.get(LOG_LEVEL_ENV, 'WARNING').upper()
    return getattr(logging, env_level, logging.WARNING)


def setup_logging(
    level: Optional[int] = None,
    log_format: Optional[str] = None,
) -> None:
    """
    Configure logging for the cushare package.

    Args:
        level: Logging level (default: from CUSHARE_LOG_LEVEL env var or WARNING)
        log_format: Custom format string (default: timestamp - name - level - message)
    """
    log_level = level if level is not None else _get_log_level_from_env()

    logger = logging.getLogger("cushare")
    logger.setLevel(log_level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(log_format or DEFAULT_FORMAT))
    logger.addHandler(handler)

"""Logging configuration.

This module configures the root logger once for the whole application.
"""

import logging
import sys

from config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configure root logging with a single stream handler.

    Calling this more than once does not add duplicate handlers.

    Args:
        level: Logging level name, e.g. "INFO" or "DEBUG".
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if not any(getattr(h, "_classroom_handler", False) for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._classroom_handler = True
        root_logger.addHandler(handler)

    # SQL echo is noisy at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

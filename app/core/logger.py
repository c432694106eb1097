"""
Application logger.

One "studentnest" logger writing to stdout; modules take child loggers
through get_logger(__name__).
"""

import logging
import sys

from app.core.config import get_settings

settings = get_settings()

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

logger = logging.getLogger("studentnest")
logger.setLevel(settings.log_level.upper())
logger.propagate = False

# Prevent duplicate handlers if imported multiple times
if not logger.handlers:
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(stream_handler)


def get_logger(name: str) -> logging.Logger:
    """Child logger of the application logger, e.g. studentnest.app.services.booking_service"""
    return logger.getChild(name)

"""loguru configuration shared by the Streamlit app and scripts."""
from __future__ import annotations

import sys

from loguru import logger

from dojodesk.config import Settings

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)

_configured = False


def configure_logging(settings: Settings) -> None:
    """Install the stderr (and optional file) sinks once per process.

    Streamlit re-executes the main script on every interaction, so repeated
    calls are no-ops.
    """
    global _configured
    if _configured:
        return

    logger.remove()
    logger.add(sys.stderr, format=_CONSOLE_FORMAT, level=settings.log_level)
    if settings.log_file:
        logger.add(
            settings.log_file,
            rotation="1 day",
            retention="30 days",
            level="DEBUG",
        )
    _configured = True
    logger.debug("Logging configured (level={})", settings.log_level)


__all__ = ["configure_logging"]

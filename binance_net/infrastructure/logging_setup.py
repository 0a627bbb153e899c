"""Loguru sink configuration."""

import sys
from pathlib import Path

from loguru import logger

from .config import Settings, get_settings


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure loguru logging.

    Replaces the default handler with a stderr handler and, when
    ``LOG_LOG_FILE`` is set, a rotating file handler.

    Args:
        settings: Library settings. If None, uses default settings.
    """
    log_settings = (settings or get_settings()).logging

    # Remove default handler
    logger.remove()

    # Add console handler
    logger.add(
        sys.stderr,
        format=log_settings.format,
        level=log_settings.level,
        colorize=True,
    )

    if log_settings.log_file:
        log_path = Path(log_settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            str(log_path),
            format=log_settings.format,
            level=log_settings.level,
            rotation=log_settings.rotation,
            retention=log_settings.retention,
        )

    logger.debug("Logging configured")

"""
Logging setup using Loguru.
"""

import sys
from pathlib import Path
from loguru import logger

from .config import LoggingSettings, settings


def setup_logging(config: LoggingSettings = None) -> None:
    """
    Configure the loguru logger.

    Replaces the default handler with a console sink and, when a log file is
    configured, a rotating file sink.

    Args:
        config: Logging configuration (uses settings if not specified)
    """
    config = config or settings.logging

    logger.remove()
    logger.add(
        sys.stderr,
        format=config.format,
        level=config.level,
        colorize=True,
    )

    if config.file:
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            format=config.format,
            level=config.level,
            rotation="10 MB",
            retention="7 days",
        )

    logger.info(f"Logging initialized: level={config.level}, file={config.file}")

"""Loguru sink configuration."""

import sys
from pathlib import Path

from loguru import logger

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO", log_file: Path | None = None) -> None:
    """
    Replace loguru's default sink with the configured ones.

    Args:
        level: Minimum level for all sinks.
        log_file: Optional file that receives a rotated copy of the log.
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=_FORMAT)
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_file),
            level=level.upper(),
            rotation="10 MB",
            retention=5,
            encoding="utf-8",
        )
    logger.debug(f"Logging configured at level {level.upper()}")

"""
Loguru setup for applications embedding stepseries.

Library modules only call `logger.*`; nothing is configured on import.
"""
from __future__ import annotations
import sys
from typing import Any

from loguru import logger

LEVELS = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]

FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def configure_logging(level: str = "INFO", sink: Any = sys.stderr) -> int:
    """Replace loguru's handlers with a single sink at `level`.

    Returns the handler id so callers can remove it again.
    """
    level_upper = level.upper()
    if level_upper not in LEVELS:
        raise ValueError(f"Invalid level '{level}'. Choose from: {', '.join(LEVELS)}")

    logger.remove()
    return logger.add(sink, level=level_upper, format=FORMAT, backtrace=True)


__all__ = ["logger", "configure_logging", "LEVELS"]

"""Logging configuration for the desktop app."""

from __future__ import annotations

import sys

from loguru import logger

try:
    import vosk
except Exception:  # pragma: no cover
    vosk = None  # type: ignore

LOG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{module}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO") -> None:
    """Send loguru output to stderr at ``level``.

    Kaldi's native logging is silenced unless running at DEBUG.
    """
    level = level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)
    if vosk is not None:
        vosk.SetLogLevel(0 if level == "DEBUG" else -1)
    logger.debug(f"Logging configured at {level}")

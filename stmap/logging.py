# stmap/logging.py
"""
Logging setup using Loguru.

Handles are used from a single thread, so the format carries no pid/tid.
"""
from __future__ import annotations

import sys
from typing import Optional, TextIO

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> "
    "| <level>{level: <8}</level> "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> "
    "- <level>{message}</level>"
)


def configure_logging(*, debug: bool = False, sink: Optional[TextIO] = None) -> None:
    """Replace loguru's sinks with a single console sink.

    Args:
        debug: Log DEBUG records (open/close timings) with full tracebacks.
        sink: Stream to write to; defaults to stderr.
    """
    logger.remove()
    logger.add(
        sys.stderr if sink is None else sink,
        level="DEBUG" if debug else "INFO",
        format=LOG_FORMAT,
        colorize=None if sink is None else False,
        backtrace=debug,
        diagnose=debug,
    )

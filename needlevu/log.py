"""Logging setup (loguru)."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger


def setup_logging(level: str = "INFO", log_file: str | Path | None = None) -> None:
    """Route loguru output to a file, or to stderr when no file is given.

    The terminal UI owns the screen, so interactive runs should log to a file.
    """
    logger.remove()
    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(str(path), level=level.upper(), rotation="1 MB", retention=3)
    else:
        logger.add(sys.stderr, level=level.upper())

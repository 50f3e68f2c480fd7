"""Logging configuration shared by the app factory and scripts."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO") -> None:
    """Install one stream handler on the package logger.

    Calling it again only updates the level, so app factories used by tests
    do not stack handlers.
    """
    logger = logging.getLogger("school_attendance")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    if not any(getattr(h, "_school_attendance", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._school_attendance = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

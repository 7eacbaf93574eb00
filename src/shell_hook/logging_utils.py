"""Runtime logging helpers."""

from __future__ import annotations

import os
import sys

from loguru import logger

_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<6} | {name}:{function}:{line} | {message}"
_CONFIGURED_LEVEL: str | None = None


def _stderr_sink(message: str) -> None:
    # sys.stderr may be replaced after configuration.
    sys.stderr.write(message)


def configure_logging(level: str | None = None) -> None:
    """Configure process-level logging once per level."""
    global _CONFIGURED_LEVEL
    level = (level or os.getenv("SHELL_HOOK_LOG_LEVEL", "WARNING")).upper()
    if level == _CONFIGURED_LEVEL:
        return

    logger.remove()
    logger.add(
        _stderr_sink,
        level=level,
        format=_FORMAT,
        backtrace=False,
        diagnose=False,
    )
    _CONFIGURED_LEVEL = level

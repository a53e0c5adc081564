"""Logging for ``voucher_pivot``.

Modules log through ``get_logger("voucher_pivot.<module>")`` with compact
``event key=value`` messages and never attach handlers themselves. The CLI
calls :func:`configure_logging` once; library users configure the
``voucher_pivot`` logger however they like.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "voucher_pivot"
LOG_LEVEL_ENV = "VOUCHER_PIVOT_LOG_LEVEL"

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s %(message)s"


class _PivotHandler(logging.StreamHandler):
    """Marker type so repeated configuration never stacks handlers."""


def resolve_level(value: int | str | None) -> int:
    """Level from an int, a level name, or ``$VOUCHER_PIVOT_LOG_LEVEL``.

    Unknown names fall back to ``INFO``.
    """

    if value is None:
        value = os.getenv(LOG_LEVEL_ENV, "")
    if isinstance(value, int):
        return value
    resolved = logging.getLevelName(value.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    level: int | str | None = None, *, stream: IO[str] = sys.stderr
) -> logging.Logger:
    """Send package logs to ``stream`` (stderr, keeping stdout for reports)."""

    logger = logging.getLogger(PACKAGE_LOGGER)
    resolved = resolve_level(level)
    logger.setLevel(resolved)
    if any(isinstance(h, _PivotHandler) for h in logger.handlers):
        return logger

    for h in [h for h in logger.handlers if isinstance(h, logging.NullHandler)]:
        logger.removeHandler(h)
    handler = _PivotHandler(stream)
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    pkg = logging.getLogger(PACKAGE_LOGGER)
    if not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["LOG_LEVEL_ENV", "PACKAGE_LOGGER", "configure_logging", "get_logger", "resolve_level"]

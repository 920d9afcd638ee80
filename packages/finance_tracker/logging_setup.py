"""Logging for the ``finance_tracker`` package.

Library modules call ``get_logger("finance_tracker.<module>")`` and never
attach handlers themselves; until the CLI calls :func:`configure_logging`
the package logger only carries a ``NullHandler``, so importing the core
stays silent.

Level resolution: explicit ``--log-level`` option, then
``FINANCE_TRACKER_LOG_LEVEL``, then ``WARNING``.
"""

from __future__ import annotations

import logging
import os
import sys

_PKG_LOGGER_NAME = "finance_tracker"
_LEVEL_ENV = "FINANCE_TRACKER_LOG_LEVEL"
_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def resolve_level(level: str | None = None) -> int:
    """Map a level name (``"info"``, ``"DEBUG"``...) to its number.

    Unknown or missing names fall back to the environment, then ``WARNING``.
    """

    for candidate in (level, os.getenv(_LEVEL_ENV)):
        if candidate and candidate.strip():
            numeric = logging.getLevelNamesMapping().get(candidate.strip().upper())
            if numeric is not None:
                return numeric
    return logging.WARNING


def configure_logging(level: str | None = None) -> None:
    """Attach one stderr handler to the package logger (first call only)."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.setLevel(resolve_level(level))
    logger.addHandler(handler)
    # Avoid double emission via the root logger.
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "resolve_level"]

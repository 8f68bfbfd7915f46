"""Logging configuration shared by the ``property_ledger`` entrypoints.

Two helpers are public:

- ``configure_logging(...)`` installs one ``StreamHandler`` on the
  ``"property_ledger"`` package logger. The CLI calls it once at startup;
  embedding applications may call it themselves or configure logging their own
  way.
- ``get_logger(name)`` returns a module logger. Until configuration runs the
  package logger carries a ``NullHandler`` so library use stays silent.

Modules never attach handlers themselves; they only call
``get_logger(__name__)``.

Environment
-----------
``PROPERTY_LEDGER_LOG_LEVEL``
    Level name or number used when ``configure_logging`` gets no explicit level.
``PROPERTY_LEDGER_LOG_FORMAT``
    Optional ``logging.Formatter`` format string.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "property_ledger"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str) and level.strip():
        name = level.strip().upper()
        if name.isdigit():
            return int(name)
        numeric = logging.getLevelName(name)
        if isinstance(numeric, int):
            return numeric
        raise ValueError(f"Unknown log level: {level!r}")
    env_val = os.getenv("PROPERTY_LEDGER_LOG_LEVEL")
    if env_val:
        return _parse_level(env_val)
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Attach the package handler exactly once.

    Parameters
    ----------
    level:
        ``int`` or level name. ``None`` falls back to
        ``PROPERTY_LEDGER_LOG_LEVEL`` and then ``logging.INFO``.
    fmt:
        Format string; defaults to ``PROPERTY_LEDGER_LOG_FORMAT`` or
        ``"%(asctime)s %(name)s %(levelname)s %(message)s"``.
    stream:
        Destination for the handler (``sys.stderr`` by default, keeping stdout
        free for report output).
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    resolved = _parse_level(level)
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(
        logging.Formatter(fmt or os.getenv("PROPERTY_LEDGER_LOG_FORMAT") or _DEFAULT_FORMAT)
    )

    logger.setLevel(resolved)
    logger.addHandler(handler)
    # Report output goes to stdout; keep log lines from doubling via root.
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)`` with a silent default for libraries."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]

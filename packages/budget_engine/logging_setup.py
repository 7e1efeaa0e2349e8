"""Logging for the ``budget_engine`` package.

The engine is a library, so it stays silent until a host opts in:

- ``configure_logging(...)`` installs one ``StreamHandler`` on the
  ``"budget_engine"`` logger. The CLI calls it from its root callback after
  ``.env`` has been loaded, so ``BUDGET_ENGINE_LOG_LEVEL`` may come from there.
- ``get_logger(name)`` hands out ``budget_engine.<module>`` loggers and parks a
  ``NullHandler`` on the package logger until configuration happens.
- ``log_decode_report(...)`` is the shared summary both statement decoders
  emit: one DEBUG line per skipped record and one INFO line per batch.
- ``reset_logging()`` undoes ``configure_logging`` (test suites, embedding
  hosts that reconfigure).
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import DecodeReport

PACKAGE_LOGGER = "budget_engine"
LEVEL_ENV = "BUDGET_ENGINE_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_handler: logging.Handler | None = None


def resolve_level(level: int | str | None = None) -> int:
    """Turn ``level`` (or ``$BUDGET_ENGINE_LOG_LEVEL`` when ``None``) into a number.

    Unknown names fall back to ``INFO`` rather than failing the command.
    """

    if level is None:
        level = os.getenv(LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelNamesMapping().get(name)
    return numeric if numeric is not None else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Attach the package handler; later calls are no-ops until ``reset_logging``.

    Parameters
    ----------
    level:
        Level number or name. ``None`` reads ``BUDGET_ENGINE_LOG_LEVEL``.
    fmt:
        Format string, ``DEFAULT_FORMAT`` when omitted.
    stream:
        Destination, ``sys.stderr`` by default.
    """

    global _handler
    if _handler is not None:
        return

    logger = logging.getLogger(PACKAGE_LOGGER)
    for h in [h for h in logger.handlers if isinstance(h, logging.NullHandler)]:
        logger.removeHandler(h)

    resolved = resolve_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(resolved)
    logger.propagate = False
    _handler = handler


def reset_logging() -> None:
    """Remove the handler installed by ``configure_logging``."""

    global _handler
    logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler = None
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


def get_logger(name: str) -> logging.Logger:
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


def log_decode_report(logger: logging.Logger, source: str, report: DecodeReport) -> None:
    """Log the outcome of one decoded statement."""

    for rec in report.skipped:
        logger.debug("%s: skipped record %d: %s", source, rec.position, rec.reason)
    logger.info(
        "%s: decoded %d transactions (%d skipped)",
        source,
        len(report.candidates),
        len(report.skipped),
    )


__all__ = [
    "LEVEL_ENV",
    "configure_logging",
    "get_logger",
    "log_decode_report",
    "reset_logging",
    "resolve_level",
]

"""Logging for ``budget_analysis``.

Every module logs through ``get_logger("budget_analysis.<module>")`` and
never attaches handlers. The package root stays silent (a ``NullHandler``)
until ``configure_logging`` runs; the CLI's root callback does that once,
taking ``--log-level`` or else ``BUDGET_ANALYSIS_LOG_LEVEL`` (default INFO).

Messages are ``<stage>:<event>`` followed by ``key=value`` pairs, for
example::

    parse_csv:row_skipped row=3 reason=Invalid date "someday"
    ai_categorize:batch_failed batch_index=0 num_transactions=50 error=APIError
    pipeline:add_statements new=12 total=40 errors=0

Per-row and per-batch degradations log at WARNING/ERROR; stage summaries at
INFO; merge bookkeeping at DEBUG.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "budget_analysis"
_LEVEL_ENV_VAR = "BUDGET_ANALYSIS_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if level is None:
        level = os.getenv(_LEVEL_ENV_VAR)
    if isinstance(level, str):
        name = level.strip().upper()
        if name.isdigit():
            return int(name)
        numeric = logging.getLevelName(name)
        if isinstance(numeric, int):
            return numeric
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Configure the package root logger exactly once.

    Parameters
    ----------
    level:
        Level as ``int`` or name (``"DEBUG"``). ``None`` reads
        ``BUDGET_ANALYSIS_LOG_LEVEL`` and defaults to ``INFO``.
    fmt:
        Optional format string for the handler.
    stream:
        Destination of the single handler (``sys.stderr`` by default).
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    # Keep records from reaching the root logger a second time.
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]

"""
structlog setup for zmigrate.

Every line carries timestamp, level, logger and event_type; migration
code binds txid / pool / account as context. Output goes to stderr so the
CLI summary on stdout stays clean.

LOG_LEVEL (default INFO) and LOG_FORMAT (json | console, default json)
are read once at import.
"""

from __future__ import annotations

import logging
import os
import sys

import structlog

LOG_LEVEL = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()


def configure_structlog() -> None:
    if LOG_FORMAT == "json":
        renderers = [structlog.processors.EventRenamer("event_type"), structlog.processors.JSONRenderer(default=str)]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            structlog.processors.format_exc_info,
            *renderers,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """Module logger; the first positional argument of each call becomes event_type."""
    return structlog.get_logger(name).bind(logger=name)


def bind_transaction(txid: str) -> structlog.BoundLogger:
    """Logger with txid bound to every subsequent call."""
    return get_logger("zmigrate").bind(txid=txid)

"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from drivetree.core.config import settings

# The Google client libraries log every discovery lookup and consent redirect
GOOGLE_LOGGERS = ("googleapiclient.discovery", "google_auth_oauthlib.flow")
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _renderers(debug: bool) -> list[Any]:
    if debug:
        return [structlog.dev.ConsoleRenderer(colors=True)]
    return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]


def setup_logging(log_level: str | None = None, debug: bool | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: Level name. Defaults to ``settings.log_level``.
        debug: Console output instead of JSON. Defaults to ``settings.debug``.
    """
    level = logging.getLevelName((log_level or settings.log_level).upper())
    if not isinstance(level, int):
        level = logging.INFO
    debug = settings.debug if debug is None else debug

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            *_renderers(debug),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    for name in GOOGLE_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))
    for name in SERVER_LOGGERS:
        logging.getLogger(name).setLevel(level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, usually with the caller's ``__name__``."""
    return structlog.get_logger(name)

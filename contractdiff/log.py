"""Structured logging setup for contractdiff."""

from __future__ import annotations

import sys
from typing import Union

import structlog

from .models import LogLevel


LEVELS = {
    LogLevel.DEBUG: 10,
    LogLevel.INFO: 20,
    LogLevel.WARN: 30,
    LogLevel.ERROR: 40,
}


def configure_logging(level: Union[LogLevel, str] = LogLevel.INFO, json_output: bool = False):
    """
    Configure structlog for the engine and the command-line script.

    Log lines go to stderr so that reports written to stdout stay parseable.

    Args:
        level: Minimum level to emit
        json_output: Render events as JSON lines instead of console output
    """
    if isinstance(level, str):
        level = LogLevel(level.upper())

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(LEVELS[level]),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

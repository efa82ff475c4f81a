"""
structlog setup for the mirror.

Console output for interactive runs, JSON lines when the sync runs
from cron or a container. Events are snake_case with the check-in id
as a field, e.g. ``logger.info("checkin_mirrored", checkin_id=12345)``.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

# boto3 and httpx log request bodies at DEBUG
QUIET_LOGGERS = ("botocore", "boto3", "urllib3", "httpx", "httpcore")

# Worker threads log too, so the thread name goes with the call site
CALLSITE = [
    structlog.processors.CallsiteParameter.FILENAME,
    structlog.processors.CallsiteParameter.LINENO,
    structlog.processors.CallsiteParameter.THREAD_NAME,
]


def _renderer(format: str) -> list[Any]:
    if format == "json":
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [
        structlog.dev.ConsoleRenderer(
            colors=sys.stdout.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )
    ]


def setup_logging(
    level: str = "INFO",
    format: str = "console",
    *,
    include_timestamp: bool = True,
    include_location: bool = False,
) -> None:
    """Configure structlog on top of the stdlib root logger.

    An unknown level falls back to INFO rather than failing the run.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]
    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    if include_location:
        processors.append(structlog.processors.CallsiteParameterAdder(CALLSITE))
    processors += [
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        *_renderer(format),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


def bind_context(**kwargs: Any) -> None:
    """Attach fields (command, csv path) to every later event on this thread.

    Pool workers do not inherit them; they log the check-in id explicitly.
    """
    structlog.contextvars.bind_contextvars(**kwargs)

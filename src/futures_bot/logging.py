"""Structured logging for the futures client, built on structlog.

Every module logs through ``get_logger(__name__)``. Order operations bind
their operation name and symbol with ``order_context`` so retry warnings,
exchange rejections and the account report that follow an order call can be
read back as one operation, across awaits.
"""

import logging
import os
from contextlib import AbstractContextManager

import structlog

# Libraries whose DEBUG/INFO chatter duplicates what the gateway already reports.
NOISY_LOGGERS = ("aiohttp", "aiohttp.client", "aiohttp.internal", "asyncio")


def setup_logging(log_level: str = "INFO", log_format: str | None = None) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_level: Root level name, e.g. ``"DEBUG"``.
        log_format: ``"json"`` for unattended runs, ``"console"`` for an
            operator terminal. Falls back to ``LOG_FORMAT`` and then console.
    """
    log_format = (log_format or os.environ.get("LOG_FORMAT", "console")).lower()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def order_context(**fields: object) -> AbstractContextManager:
    """Bind fields to every log line emitted inside one order operation."""
    return structlog.contextvars.bound_contextvars(**fields)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)

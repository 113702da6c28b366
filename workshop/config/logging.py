"""
Structured logging for the ledger service.

Events are snake_case names with keyword context (``movement_recorded``,
``purchase_receipt_reversed``). Console output in development, one JSON
object per line elsewhere. A request id bound by the HTTP middleware is
carried into every event logged while that request is handled.
"""

import logging
import sys
from decimal import Decimal
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from workshop.config.settings import get_settings

QUIET_LOGGERS = ("aiosqlite", "uvicorn.access", "httpx", "httpcore")


def add_service_context(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    settings = get_settings()
    event_dict.setdefault("service", settings.app_name)
    event_dict.setdefault("version", settings.app_version)
    event_dict.setdefault("env", settings.environment)
    return event_dict


def stringify_decimals(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Render quantities and money exactly instead of as floats."""
    for key, value in event_dict.items():
        if isinstance(value, Decimal):
            event_dict[key] = str(value)
    return event_dict


def bind_request_context(**values: Any) -> None:
    """Attach values (e.g. request_id) to every event until cleared."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def configure_logging() -> None:
    """Configure structlog and the stdlib root logger from settings."""
    settings = get_settings()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        add_service_context,
        stringify_decimals,
    ]

    if settings.environment == "development":
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    else:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)

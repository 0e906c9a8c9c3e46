"""Structured logging configuration using structlog."""

import logging
import sys
from contextlib import AbstractContextManager
from typing import Literal

import structlog
from structlog.typing import Processor


def setup_logging(
    level: str = "INFO",
    format_type: Literal["json", "console"] = "console",
) -> None:
    """
    Configure structured logging for the booking engine.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format_type: Output format - 'json' for production, 'console' for development
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if format_type == "json":
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # Also configure standard library logging (httpx logs through it)
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
        stream=sys.stderr,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a logger instance.

    Args:
        name: Optional logger name (usually module name)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def booking_context(
    idempotency_key: str,
    property_id: str | None = None,
    room_type_id: str | None = None,
) -> AbstractContextManager[None]:
    """
    Bind a booking's identifiers to every event logged inside the block.

    Args:
        idempotency_key: Draft idempotency key (stable across retries)
        property_id: Property (business unit) ID
        room_type_id: Room type ID

    Returns:
        Context manager; the previous context is restored on exit
    """
    context = {"idempotency_key": idempotency_key}
    if property_id:
        context["property_id"] = property_id
    if room_type_id:
        context["room_type_id"] = room_type_id
    return structlog.contextvars.bound_contextvars(**context)


def mask_email(value: str, visible_chars: int = 1) -> str:
    """
    Mask a guest e-mail for logging, keeping the domain.

    Args:
        value: E-mail address
        visible_chars: Leading characters of the local part to keep

    Returns:
        Masked address (e.g., "j***@example.com"); fully masked if no '@'
    """
    local, at, domain = value.partition("@")
    if not at:
        return "*" * len(value)
    shown = local[:visible_chars] if len(local) > visible_chars else ""
    return f"{shown}{'*' * (len(local) - len(shown))}@{domain}"

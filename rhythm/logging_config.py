"""Structured logging for the scheduling engine.

Modules log snake_case events through ``get_logger(__name__)``.
``owner_context`` binds the acting owner for the duration of a call, so
store, availability and prep events emitted underneath it (including those
from gathered tasks) carry ``owner_id`` without passing it around.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog

from rhythm.config import Settings, get_settings


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure structlog once at process start."""
    settings = settings or get_settings()
    log_level = getattr(logging, settings.rhythm_log_level.upper(), logging.INFO)

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.is_production
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a named structured logger."""
    return structlog.get_logger(name)


@contextmanager
def owner_context(owner_id: str, **extra: Any) -> Iterator[None]:
    """Bind ``owner_id`` (and any extra keys) to every log event in the block."""
    with structlog.contextvars.bound_contextvars(owner_id=owner_id, **extra):
        yield

"""Structured logging for the forecasting engine.

Every event is a dotted name plus keyword context, e.g.
``forecasting.search_completed alpha=0.3 holdout_mae=4.1``. Engine code
passes numpy scalars and arrays freely; ``coerce_numpy`` turns them into
plain Python values before rendering so the JSON renderer never chokes.
"""

import logging
from collections.abc import MutableMapping
from contextvars import ContextVar
from typing import Any

import numpy as np
import structlog

from forecast_engine.core.config import get_settings

# Set by RequestIdMiddleware; copied into worker threads with the context
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

EventDict = MutableMapping[str, Any]


def add_request_id(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add the active request_id, if any, to the event."""
    request_id = request_id_ctx.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def add_app_name(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Tag events with the configured application name."""
    event_dict.setdefault("app", get_settings().app_name)
    return event_dict


def _to_builtin(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, (list, tuple)):
        return [_to_builtin(v) for v in value]
    return value


def coerce_numpy(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Replace numpy scalars and arrays in the event with builtin values."""
    for key, value in event_dict.items():
        event_dict[key] = _to_builtin(value)
    return event_dict


def configure_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """Configure structlog for the engine and its HTTP surface.

    Args:
        log_level: Level name overriding ``settings.log_level``.
        log_format: ``json`` or ``console``, overriding ``settings.log_format``.
    """
    settings = get_settings()
    level = (log_level or settings.log_level).upper()
    fmt = log_format or settings.log_format

    renderer: structlog.types.Processor
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=settings.is_development)

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_request_id,
            add_app_name,
            coerce_numpy,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a logger, optionally named after the calling module."""
    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger

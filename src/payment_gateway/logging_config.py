"""Structured logging configuration using structlog."""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor


def drop_empty_correlation_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Remove a correlation ID bound as None (requests without X-Request-ID)."""
    if event_dict.get("correlation_id") is None:
        event_dict.pop("correlation_id", None)
    return event_dict


def strip_correlation_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.pop("correlation_id", None)
    return event_dict


def _service_name_adder(service_name: str) -> Processor:
    def add_service_name(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service_name)
        return event_dict

    return add_service_name


def configure_logging(
    log_level: str = "INFO",
    format_as_json: bool = True,
    include_correlation_id: bool = True,
    service_name: str | None = None,
) -> None:
    """
    Configure structlog on top of stdlib logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_as_json: JSON lines if True, console format otherwise
        include_correlation_id: Keep request correlation IDs bound via contextvars
        service_name: Added to every event as ``service`` when given
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    processors.append(drop_empty_correlation_id if include_correlation_id else strip_correlation_id)
    if service_name:
        processors.append(_service_name_adder(service_name))

    if format_as_json:
        processors.extend([structlog.processors.format_exc_info, structlog.processors.JSONRenderer()])
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)

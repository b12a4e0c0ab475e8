"""
Structured logging for the Edge Frontend.

Request-scoped fields (request id, authenticated user) are bound through
structlog's contextvars support and merged into every event logged while
the request is in flight.
"""

import logging
import sys
import uuid
from typing import Any, Callable, Dict, Optional

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, get_contextvars, merge_contextvars

EventDict = Dict[str, Any]


def add_service_name(service_name: str) -> Callable[[Any, str, EventDict], EventDict]:
    """Processor stamping every event with the owning service."""

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Route structlog through stdlib logging as one JSON object per line."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
            add_service_name(service_name),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)


def bind_request(request_id: Optional[str] = None) -> str:
    """Bind the request id for the current request, generating one if absent."""
    request_id = request_id or str(uuid.uuid4())
    bind_contextvars(request_id=request_id)
    return request_id


def bind_user(user: str) -> None:
    bind_contextvars(user=user)


def current_request_id() -> Optional[str]:
    return get_contextvars().get("request_id")


def unbind_request() -> None:
    """Drop everything bound for the finished request."""
    clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)

"""
Shared logging configuration for the feature-flag runtime.
"""

import sys
import structlog
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

from opentelemetry import trace

# Correlation fields stamped on every event while set
sdk_key_var: ContextVar[Optional[str]] = ContextVar('sdk_key', default=None)

_CORRELATION_VARS = {
    "sdk_key": sdk_key_var,
}


def configure_logging(service_name: str, log_level: str = "info", json_logs: bool = True) -> None:
    """
    Configure structured logging for the runtime.

    JSON output is meant for deployed environments; `json_logs=False`
    switches to structlog's console renderer for local work.
    """
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _service_context(service_name),
            add_trace_context,
            add_correlation_context,
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )


def configure_logging_from_config(config: Any, service_name: str = "flag-runtime") -> None:
    """Configure logging from a RuntimeConfig; console output when env is local."""
    configure_logging(service_name, config.log_level, json_logs=config.env != "local")


def _service_context(service_name: str):
    """Build a processor that stamps the service and component names."""

    def add_service_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", service_name)
        # Logger names look like "flags.<component>"
        logger_name = event_dict.get("logger", "")
        if "." in logger_name:
            event_dict["component"] = logger_name.split(".", 1)[1]
        return event_dict

    return add_service_context


def add_trace_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add trace context to log events."""
    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        event_dict["trace_id"] = f"{span_context.trace_id:032x}"
        event_dict["span_id"] = f"{span_context.span_id:016x}"
    return event_dict


def add_correlation_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add whichever correlation fields are set."""
    for field, var in _CORRELATION_VARS.items():
        value = var.get()
        if value:
            event_dict[field] = value
    return event_dict


@contextmanager
def datafile_context(sdk_key: Optional[str]) -> Iterator[None]:
    """Stamp the datafile key on events logged inside the block."""
    token = sdk_key_var.set(sdk_key)
    try:
        yield
    finally:
        sdk_key_var.reset(token)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)

"""
Shared error handling for the feature-flag runtime.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel
from opentelemetry import trace


class ErrorResponse(BaseModel):
    """Serializable description of a runtime failure, for logs and callbacks."""

    trace_id: Optional[str] = None
    code: str
    message: str
    key: Optional[str] = None
    retryable: bool = False
    details: Dict[str, Any] = {}


def current_trace_id() -> Optional[str]:
    """Hex trace id of the active span, if there is one."""
    span_context = trace.get_current_span().get_span_context()
    return f"{span_context.trace_id:032x}" if span_context.is_valid else None


class FlagRuntimeException(Exception):
    """Base exception for the flag runtime."""

    # Whether trying the same operation again later may succeed
    retryable = False

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            trace_id=current_trace_id(),
            code=self.code,
            message=self.message,
            key=getattr(self, "key", None),
            retryable=self.retryable,
            details=self.details
        )


class ConfigurationError(FlagRuntimeException):
    """Invalid runtime configuration."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class ResourceFetchError(FlagRuntimeException):
    """A remote resource could not be fetched."""

    retryable = True

    def __init__(self, key: str, message: str = "Resource fetch failed", details: Optional[Dict[str, Any]] = None):
        self.key = key
        super().__init__("RESOURCE_FETCH_ERROR", f"{key}: {message}", details)


class ResourceUnavailableError(FlagRuntimeException):
    """An upstream cache has no value to derive from."""

    retryable = True

    def __init__(self, key: str, message: str = "Upstream resource unavailable", details: Optional[Dict[str, Any]] = None):
        self.key = key
        super().__init__("RESOURCE_UNAVAILABLE", f"{key}: {message}", details)

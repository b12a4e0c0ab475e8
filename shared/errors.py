"""
Shared error handling for the Edge Frontend.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class FrontendException(Exception):
    """Base exception for Edge Frontend services."""

    status_code = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class UpstreamUnavailableError(FrontendException):
    """An upstream fetch failed or answered with a non-2xx status."""

    status_code = 502

    def __init__(
        self,
        url: str,
        message: str = "Upstream unavailable",
        status_code: Optional[int] = None,
        timed_out: bool = False,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        details["url"] = url
        if status_code is not None:
            details["upstream_status"] = status_code
        super().__init__("UPSTREAM_UNAVAILABLE", message, details)
        self.url = url
        self.upstream_status = status_code
        self.timed_out = timed_out
        if timed_out:
            self.status_code = 504


class InvalidTargetError(FrontendException):
    """The URL embedded in a proxy path could not be decoded into an absolute URL."""

    def __init__(self, message: str = "Invalid proxy target", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_TARGET", message, details)


class TunnelConfigurationError(FrontendException):
    """The configured tunneling sub-server could not be loaded."""

    def __init__(self, message: str = "Tunnel misconfigured", details: Optional[Dict[str, Any]] = None):
        super().__init__("TUNNEL_CONFIGURATION_ERROR", message, details)

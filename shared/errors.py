"""
Shared error handling for the Place Search Proxy.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from shared.logging import get_request_id


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class SearchProxyException(Exception):
    """Base exception for search proxy services."""

    status_code: int = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=get_request_id(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class ServiceError(SearchProxyException):
    """Service-related errors, e.g. missing configuration or secrets."""

    status_code = 500

    def __init__(self, message: str = "Service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("SERVICE_ERROR", message, details)


class MalformedUpstreamResponse(SearchProxyException):
    """Upstream answered with a success status but the body could not be parsed."""

    status_code = 502

    def __init__(self, message: str = "Malformed upstream response", details: Optional[Dict[str, Any]] = None):
        super().__init__("MALFORMED_UPSTREAM_RESPONSE", message, details)


class UpstreamUnavailable(SearchProxyException):
    """Upstream could not be reached at all (network error, timeout)."""

    status_code = 503

    def __init__(self, service: str, message: str = "Upstream unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("UPSTREAM_UNAVAILABLE", f"{service}: {message}", details)

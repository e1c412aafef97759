"""
Domain specific exception hierarchy for the x_transport package.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from x_transport.models import ApiErrorDetail, ResponseMetadata


class XTransportError(Exception):
    """Base exception for all library errors."""


class ConfigurationError(XTransportError):
    """Raised when required configuration, credentials or collaborators are missing."""


class ConnectivityError(XTransportError):
    """Raised when the transport fails before an HTTP response is available."""


class RequestTimeout(ConnectivityError):
    """Raised when a request does not complete within the configured timeout."""


class ApiResponseError(XTransportError):
    """Raised when the X API returns an error status or error payload."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        code: int | None = None,
        errors: Sequence["ApiErrorDetail"] = (),
        metadata: "ResponseMetadata | None" = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.code = code
        self.errors = list(errors)
        self.metadata = metadata


class RateLimitExceeded(ApiResponseError):
    """Raised when the X API enforces a rate limit."""

    def __init__(self, message: str, *, reset_at: int | None = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.reset_at = reset_at


class CancellationError(XTransportError):
    """Raised when the caller's cancellation signal fires mid-operation."""


class ProtocolViolation(XTransportError):
    """Raised when a multi-step protocol receives a response it cannot continue from."""


class MediaValidationError(XTransportError):
    """Raised when local media files do not satisfy upload requirements."""

"""
Lookup pipeline errors.

Each rejection reason is its own exception class carrying the HTTP
status and the ONLY message the caller ever sees. Whatever detail is
passed to the constructor is for server-side logs, never the response.

Mapping:
  InvalidNumberFormat / MissingParameters → 400
  AuthenticationError                     → 401  (unknown, expired, disabled)
  AccessSuspended                         → 403  (paused key)
  RateLimitExceeded / QuotaExceeded       → 429
  InternalError                           → 500
  UpstreamUnavailable                     → 503
"""

from __future__ import annotations

from fastapi import status


class GatewayError(Exception):
    """Base class for every rejection the lookup pipeline can produce."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, detail: str | None = None, *, retry_after: int | None = None) -> None:
        super().__init__(detail or self.message)
        self.retry_after = retry_after


class InvalidNumberFormat(GatewayError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid mobile number format"


class MissingParameters(GatewayError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Missing required parameters"


class AuthenticationError(GatewayError):
    """Unknown or expired key.

    Deliberately one message for every cause so callers cannot probe
    which keys exist.
    """

    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Authentication failed"


class AccessSuspended(GatewayError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Service temporarily suspended"


class RateLimitExceeded(GatewayError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    message = "Rate limit exceeded"


class QuotaExceeded(GatewayError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    message = "Daily quota exceeded"


class UpstreamUnavailable(GatewayError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "Service temporarily unavailable. Please try again later."


class InternalError(GatewayError):
    """Unexpected store or programming failure — logged in full, returned opaque."""

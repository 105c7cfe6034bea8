"""
Centralized error taxonomy for the inbound, trigger and admin paths.
Services raise these; routes stay thin and map them with error_to_http.
"""
from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Constants: status codes
# ---------------------------------------------------------------------------

STATUS_BAD_REQUEST = 400
STATUS_UNAUTHORIZED = 401
STATUS_FORBIDDEN = 403
STATUS_NOT_FOUND = 404
STATUS_TOO_MANY_REQUESTS = 429
STATUS_INTERNAL_ERROR = 500


class MeatupError(Exception):
    """Base for expected failures. `context` is merged into the JSON error body."""

    status_code = STATUS_INTERNAL_ERROR

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class ConfigurationError(MeatupError):
    """Missing shared secret or API key. Operator-visible, never conflated with auth failure."""

    status_code = STATUS_INTERNAL_ERROR


class AuthenticationError(MeatupError):
    """Bad or missing signature / token. No payload is echoed back."""

    status_code = STATUS_UNAUTHORIZED


class AuthorizationError(MeatupError):
    status_code = STATUS_FORBIDDEN


class PayloadValidationError(MeatupError):
    status_code = STATUS_BAD_REQUEST


class NotFoundError(MeatupError):
    status_code = STATUS_NOT_FOUND


class BusinessRuleError(MeatupError):
    """User-facing rule violation (zero-vote winner, past date, missing address)."""

    status_code = STATUS_BAD_REQUEST


class RateLimitedError(MeatupError):
    status_code = STATUS_TOO_MANY_REQUESTS


def error_to_http(exc: Exception) -> tuple[int, dict[str, Any]]:
    """
    Map an exception into (status_code, JSON body).
    Known errors keep their message and context; anything else is a 500 carrying the reason.
    """
    if isinstance(exc, MeatupError):
        body: dict[str, Any] = {"error": exc.message}
        body.update(exc.context)
        return exc.status_code, body
    return STATUS_INTERNAL_ERROR, {"error": "Internal error", "message": str(exc)}

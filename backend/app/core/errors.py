"""
Centralized error handling for dispatch failures.
Domain exceptions plus a reusable helper so routes stay thin and new error types are easy to add.
"""
from __future__ import annotations

from fastapi import HTTPException

# ---------------------------------------------------------------------------
# Constants: status codes and user-facing messages
# ---------------------------------------------------------------------------

STATUS_BAD_REQUEST = 400
STATUS_UNAUTHORIZED = 401
STATUS_INTERNAL_ERROR = 500

MSG_DATABASE_ERROR = "Database error"
MSG_UNAUTHORIZED = "Unauthorized"


class DispatchError(Exception):
    """Base for errors that abort a whole webhook or scheduled run."""


class InvalidPayloadError(DispatchError):
    """Webhook body missing, not JSON, or without the sys/fields shape."""


class RecipientStoreError(DispatchError):
    """Recipients could not be read, so the recipient set is unknown."""


# ---------------------------------------------------------------------------
# Error rules: (exception type, status_code, detail). First match wins.
# detail=None means "use the exception message".
# ---------------------------------------------------------------------------

DISPATCH_ERROR_RULES: list[tuple[type[Exception], int, str | None]] = [
    (InvalidPayloadError, STATUS_BAD_REQUEST, None),
    (RecipientStoreError, STATUS_INTERNAL_ERROR, MSG_DATABASE_ERROR),
]


def dispatch_error_to_http(exc: Exception) -> HTTPException:
    """
    Map an exception from a webhook or scheduled run into an HTTPException.
    Uses DISPATCH_ERROR_RULES for known error types; otherwise returns 500 with the exception message.
    """
    for exc_type, status_code, detail in DISPATCH_ERROR_RULES:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail=detail or str(exc))
    return HTTPException(status_code=STATUS_INTERNAL_ERROR, detail=str(exc))

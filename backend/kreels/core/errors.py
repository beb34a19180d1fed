"""
Centralized error handling for the notification backend.
Exception taxonomy plus a reusable helper so routes stay thin and new error types are easy to add.

- InvalidPushTokenError: malformed device token (dropped from a batch, 400 at registration).
- PushProviderError: push provider HTTP/transport failure (logged, never propagated past the dispatcher).
- Persistence errors are SQLAlchemy's own; they propagate to the per-recipient boundary.
"""
from __future__ import annotations

from typing import Callable

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError


class NotificationError(Exception):
    """Base class for notification subsystem errors."""


class InvalidPushTokenError(NotificationError):
    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Invalid push token format: {token[:32]}")


class PushProviderError(NotificationError):
    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class NotificationNotFoundError(NotificationError):
    def __init__(self, notification_id: int):
        self.notification_id = notification_id
        super().__init__(f"Notification {notification_id} not found")


# ---------------------------------------------------------------------------
# Constants: status codes and user-facing messages
# ---------------------------------------------------------------------------

STATUS_BAD_REQUEST = 400
STATUS_NOT_FOUND = 404
STATUS_SERVICE_UNAVAILABLE = 503  # database down, pool exhausted
STATUS_INTERNAL_ERROR = 500

MSG_INVALID_PUSH_TOKEN = "Invalid push token format"
MSG_NOT_FOUND = "Notification not found"
MSG_DATABASE_UNAVAILABLE = "Database temporarily unavailable"


# ---------------------------------------------------------------------------
# Error rules: (predicate, status_code, detail_message)
# Add new rules here instead of scattering checks in routes.
# ---------------------------------------------------------------------------

def _is_type(*types: type[BaseException]) -> Callable[[Exception], bool]:
    return lambda exc: isinstance(exc, types)


# List of (predicate, status_code, detail). First match wins.
ERROR_RULES: list[tuple[Callable[[Exception], bool], int, str]] = [
    (_is_type(InvalidPushTokenError), STATUS_BAD_REQUEST, MSG_INVALID_PUSH_TOKEN),
    (_is_type(NotificationNotFoundError), STATUS_NOT_FOUND, MSG_NOT_FOUND),
    (_is_type(SQLAlchemyError), STATUS_SERVICE_UNAVAILABLE, MSG_DATABASE_UNAVAILABLE),
]


def error_to_http(exc: Exception, fallback: str = "Request failed") -> HTTPException:
    """
    Map an exception from a service call into an HTTPException.
    Uses ERROR_RULES for known error types; otherwise returns 500 with the fallback message.
    """
    for predicate, status_code, detail in ERROR_RULES:
        if predicate(exc):
            return HTTPException(status_code=status_code, detail=detail)
    return HTTPException(status_code=STATUS_INTERNAL_ERROR, detail=fallback)

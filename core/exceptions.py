"""
MEALY Error Types

Service-level exceptions carrying the HTTP status the API layer should map
them to.
"""

from typing import Any, Mapping, Optional


class MealyError(Exception):
    """Base class for errors raised by MEALY services.

    Attributes:
        message: human-readable message
        details: optional mapping with extra context
        http_status: HTTP status code for handlers
    """

    http_status = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[Mapping[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"error": self.message}
        if self.details:
            payload["details"] = dict(self.details)
        return payload

    def __str__(self) -> str:
        return self.message


class UnauthorizedError(MealyError):
    """Missing, invalid, or expired bearer token."""

    http_status = 401
    default_message = "Unauthorized"


class ForbiddenError(MealyError):
    """Request not allowed, e.g. the household is full."""

    http_status = 403
    default_message = "Forbidden"


class NotFoundError(MealyError):
    """Raised when a requested user or resource does not exist."""

    http_status = 404
    default_message = "Not found"


class InvalidStateError(MealyError):
    """Raised when an operation is not allowed in the user's current state
    (for example marking eaten while away)."""

    http_status = 400
    default_message = "Invalid state"


class InternalError(MealyError):
    """Store or provider failure."""

    http_status = 500

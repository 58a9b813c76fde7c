"""
Domain Errors

Every failure the ordering core can report is an ``AppError`` subclass
carrying the HTTP status it maps to. Services raise them; the exception
handlers in ``tableside.main`` translate them into the uniform error body:

    {"success": false, "error": {"status": 404, "message": "Order not found"}}
"""

from typing import Any, Optional


class AppError(Exception):
    """Base class for all errors surfaced to API clients.

    Keyword ``context`` is written to the log by the exception handler and
    never sent to the client.
    """

    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON error body."""
        return {
            "success": False,
            "error": {
                "status": self.status_code,
                "message": self.message,
            },
        }


class ValidationFailed(AppError):
    """Malformed input, rejected before any persistence access."""
    status_code = 400
    default_message = "Validation failed"


class ItemNotFound(AppError):
    """One or more requested menu items do not exist in the catalog."""
    status_code = 400
    default_message = "One or more menu items not found"


class ItemUnavailable(AppError):
    """A requested menu item exists but is switched off."""
    status_code = 400
    default_message = "Menu item is currently not available"


class NotEditable(AppError):
    """The order's current status does not allow field edits."""
    status_code = 400
    default_message = "Order can only be updated when in pending status"


class InvalidStatus(AppError):
    status_code = 400
    default_message = "Invalid status"


class RatingOutOfRange(AppError):
    status_code = 400
    default_message = "Rating must be a number between 1 and 5"


class Unauthorized(AppError):
    status_code = 401
    default_message = "Not authorized to access this route"


class Forbidden(AppError):
    """The entity exists but the caller may not access it."""
    status_code = 403
    default_message = "Not authorized to access this resource"


class NotFound(AppError):
    status_code = 404
    default_message = "Resource not found"


class Conflict(AppError):
    """The record changed after it was read; the caller should retry."""
    status_code = 409
    default_message = "The record was modified by another request, please retry"

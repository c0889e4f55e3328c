"""
Error taxonomy for the asset metadata service.

Every failure the store layer reports is one of these kinds. The HTTP layer
maps ``status_code`` onto the response and ``to_dict()`` onto the body.
"""

from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Base class for classified service errors."""

    kind = "internal"
    status_code = 500
    default_message = "internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.kind,
            "message": self.message,
        }


class ValidationError(ServiceError):
    """Malformed, missing or conflicting input, detected before any write."""

    kind = "validation"
    status_code = 400
    default_message = "invalid request"


class NotFoundError(ServiceError):
    """A referenced identifier does not exist."""

    kind = "not_found"
    status_code = 404
    default_message = "resource not found"


class ConflictError(ServiceError):
    """A uniqueness or referential constraint rejected the write."""

    kind = "conflict"
    status_code = 409
    default_message = "constraint violation"


class InternalError(ServiceError):
    """Storage or transport failure.

    The message stays generic so storage internals never reach the caller.
    """

    kind = "internal"
    status_code = 500
    default_message = "internal server error"

"""
Domain Exceptions

Errors raised by the store and the lifecycle services. Each carries the
kind of failure plus the offending resource and identifier, so the API
layer can map it to a status code and message without parsing strings.

Hierarchy:
- BookReviewError (base)
  - NotFoundError: referenced book/review/user missing or deleted (404)
  - ConflictError: uniqueness violation, e.g. duplicate active review (409)
  - ForbiddenError: ownership or role check failed (403)
  - ValidationError: field constraint violated outside request parsing (400)
  - StoreError: persistence failure, not locally recoverable (500)
"""

from typing import Any


class BookReviewError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    kind: str = "error"

    def __init__(
        self,
        message: str,
        *,
        resource: str | None = None,
        identifier: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.resource = resource
        self.identifier = identifier

    def to_dict(self) -> dict:
        """Serialize for JSON error responses."""
        return {
            "detail": self.message,
            "error": self.kind,
            "resource": self.resource,
            "id": self.identifier,
        }


class NotFoundError(BookReviewError):
    """Raised when a referenced entity is absent or soft-deleted."""

    status_code = 404
    kind = "not_found"


class ConflictError(BookReviewError):
    """Raised when a write would violate a uniqueness rule."""

    status_code = 409
    kind = "conflict"


class ForbiddenError(BookReviewError):
    """Raised when the requester may not act on the entity."""

    status_code = 403
    kind = "forbidden"


class ValidationError(BookReviewError):
    """Raised when a value breaks a domain constraint."""

    status_code = 400
    kind = "validation_error"


class StoreError(BookReviewError):
    """Raised when the database fails underneath an operation."""

    status_code = 500
    kind = "store_error"

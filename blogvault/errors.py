"""Error taxonomy shared by the repositories and the service layer"""

from typing import Any


class BlogVaultError(Exception):
    """Base exception for all blogvault errors."""


class ValidationError(BlogVaultError):
    """Raised when a payload is malformed or names an unknown post type.

    ``details`` is a list of ``{"field": ..., "message": ...}`` dicts, one per
    offending field.
    """

    def __init__(self, details: list[dict[str, Any]], message: str = "Validation failed"):
        super().__init__(message)
        self.message = message
        self.details = details

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}])


class NotFoundError(BlogVaultError):
    """Raised when an id or slug does not match any record.

    ``summary`` is the short envelope message, with ``message`` sent as the
    error detail; without a summary ``message`` is the envelope message.
    """

    def __init__(self, message: str = "Post not found", summary: str | None = "Not found"):
        super().__init__(message)
        self.message = message
        self.summary = summary


class ConflictError(BlogVaultError):
    """Raised when a write collides with a uniqueness constraint (slug)."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PersistenceError(BlogVaultError):
    """Raised when a storage call fails inside a transaction.

    The transaction has already been rolled back when this propagates.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

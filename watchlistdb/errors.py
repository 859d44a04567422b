"""Error taxonomy for WatchlistDB.

Every error raised by the services derives from :class:`WatchlistError` and
carries an :class:`Outcome` tag plus an HTTP-style status code, so a request
gateway can translate errors without a broad catch-all:

- :class:`DomainError` subclasses are expected outcomes of a request
  (missing record, forbidden mutation, bad input).
- :class:`InternalError` subclasses are faults (store or provider failure).
  Their public message never includes the underlying cause.

Example:
    >>> try:
    ...     movies.update_movie(42, request, actor)
    ... except DomainError as exc:
    ...     return exc.status_code, exc.to_payload()
"""

from enum import StrEnum
from typing import Any


class Outcome(StrEnum):
    """Client-facing outcome of a failed operation."""

    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    BAD_INPUT = "bad_input"
    INTERNAL = "internal"


class WatchlistError(Exception):
    """Base class for all WatchlistDB errors."""

    outcome: Outcome = Outcome.INTERNAL
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def public_message(self) -> str:
        """Message that is safe to show to the caller."""
        return self.message

    def to_payload(self) -> dict[str, Any]:
        """Render the error as a response body for the gateway."""
        return {
            "success": False,
            "outcome": self.outcome.value,
            "message": self.public_message,
        }


class DomainError(WatchlistError):
    """Expected, client-caused outcome (not a fault)."""


class NotFoundError(DomainError):
    """Referenced movie, user or identifier does not exist.

    Args:
        resource: Kind of record ("Movie", "User", "Comment")
        field: Lookup field ("id", "username")
        value: Value that failed to resolve
    """

    outcome = Outcome.NOT_FOUND
    status_code = 404

    def __init__(self, resource: str, field: str, value: Any) -> None:
        super().__init__(f"{resource} not found with {field}: '{value}'")
        self.resource = resource
        self.field = field
        self.value = value


class AuthorizationError(DomainError):
    """Actor lacks ownership or administrative privilege for a mutation."""

    outcome = Outcome.FORBIDDEN
    status_code = 403


class ValidationError(DomainError):
    """Malformed input such as an out-of-range rating or a missing title."""

    outcome = Outcome.BAD_INPUT
    status_code = 400


class InvalidOperationError(DomainError):
    """Structurally disallowed operation, e.g. following yourself."""

    outcome = Outcome.BAD_INPUT
    status_code = 400


class InternalError(WatchlistError):
    """Collaborator failure. Logged with context, surfaced generically."""

    outcome = Outcome.INTERNAL
    status_code = 500

    @property
    def public_message(self) -> str:
        return "An internal error occurred"


class MetadataProviderError(InternalError):
    """The movie metadata provider failed or rejected the request."""

    status_code = 502


__all__ = [
    "Outcome",
    "WatchlistError",
    "DomainError",
    "NotFoundError",
    "AuthorizationError",
    "ValidationError",
    "InvalidOperationError",
    "InternalError",
    "MetadataProviderError",
]

"""Tests for the error taxonomy."""

import pytest

from watchlistdb.errors import (
    AuthorizationError,
    DomainError,
    InternalError,
    InvalidOperationError,
    MetadataProviderError,
    NotFoundError,
    Outcome,
    ValidationError,
    WatchlistError,
)


@pytest.mark.parametrize(
    "error,outcome,status_code",
    [
        (NotFoundError("Movie", "id", 7), Outcome.NOT_FOUND, 404),
        (AuthorizationError("nope"), Outcome.FORBIDDEN, 403),
        (ValidationError("bad"), Outcome.BAD_INPUT, 400),
        (InvalidOperationError("Cannot follow yourself"), Outcome.BAD_INPUT, 400),
        (InternalError("boom"), Outcome.INTERNAL, 500),
        (MetadataProviderError("TMDB down"), Outcome.INTERNAL, 502),
    ],
)
def test_outcome_and_status(error, outcome, status_code):
    assert isinstance(error, WatchlistError)
    assert error.outcome == outcome
    assert error.status_code == status_code


def test_domain_errors_are_not_internal():
    assert issubclass(NotFoundError, DomainError)
    assert issubclass(InvalidOperationError, DomainError)
    assert not issubclass(InternalError, DomainError)
    assert issubclass(MetadataProviderError, InternalError)


def test_not_found_message_and_fields():
    error = NotFoundError("User", "username", "ghost")

    assert str(error) == "User not found with username: 'ghost'"
    assert (error.resource, error.field, error.value) == ("User", "username", "ghost")


def test_domain_payload_carries_message():
    payload = InvalidOperationError("Cannot follow yourself").to_payload()

    assert payload == {
        "success": False,
        "outcome": "bad_input",
        "message": "Cannot follow yourself",
    }


def test_internal_payload_hides_cause():
    error = InternalError("Persistence store failure: disk I/O error at /var/db")

    payload = error.to_payload()

    assert payload["outcome"] == "internal"
    assert payload["message"] == "An internal error occurred"
    assert "disk" not in payload["message"]
    assert "disk" in error.message

"""Tests for the StatusWatch exception hierarchy."""

import pytest

from statuswatch.errors import (
    ParseError,
    PersistenceError,
    StatusWatchError,
    TotalFailure,
    TransportError,
)


@pytest.mark.parametrize("error_class", [ParseError, PersistenceError, TotalFailure])
def test_errors_share_base_class(error_class: type[Exception]) -> None:
    assert issubclass(error_class, StatusWatchError)


def test_transport_error_names_route() -> None:
    error = TransportError(2, "HTTP 503")

    assert error.route_id == 2
    assert str(error) == "route 2: HTTP 503"
    assert isinstance(error, StatusWatchError)


def test_total_failure_summarizes_attempts() -> None:
    attempts = {1: TransportError(1, "HTTP 500"), 0: ParseError("missing 'online'")}

    error = TotalFailure(attempts)

    assert list(error.attempts) == [1, 0]
    assert str(error) == (
        "All 2 status routes failed (1: route 1: HTTP 500; 0: missing 'online')"
    )


def test_total_failure_copies_attempts() -> None:
    attempts: dict[int, Exception] = {0: ParseError("bad")}

    error = TotalFailure(attempts)
    attempts[1] = ParseError("later")

    assert list(error.attempts) == [0]

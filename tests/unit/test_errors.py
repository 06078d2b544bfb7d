"""Unit tests for the error classification hierarchy."""

import pytest

from shiftflow.errors import (
    CallerError,
    EntityNotFoundError,
    ExchangeAuthenticationError,
    ExchangeError,
    InvalidRequestError,
    MalformedEntityError,
    OrderCancellationError,
    OrderCreationError,
    OrderStatusError,
    PersistenceError,
    QuoteError,
    RateLimitedError,
    RateUnavailableError,
    SessionNotFoundError,
    StateTransitionError,
    SystemFailureError,
    UnrecoverableError,
)


class TestExternalErrors:
    """Test exchange failure classification."""

    @pytest.mark.parametrize("error_cls", [RateUnavailableError, OrderStatusError, RateLimitedError])
    def test_transient_failures_are_retryable(self, error_cls) -> None:
        """Test that transient failures default to retryable."""
        error = error_cls("temporarily unavailable")
        assert error.retryable is True
        assert error.recoverable is True

    @pytest.mark.parametrize("error_cls", [QuoteError, OrderCreationError, OrderCancellationError,
                                           ExchangeAuthenticationError])
    def test_permanent_failures(self, error_cls) -> None:
        error = error_cls("rejected")
        assert error.retryable is False
        assert isinstance(error, ExchangeError)

    def test_retryable_can_be_overridden(self) -> None:
        error = RateUnavailableError("bad pair", from_coin="btc", to_coin="nope", retryable=False, status_code=400)

        assert error.retryable is False
        assert error.status_code == 400
        assert error.from_coin == "btc"

    def test_rate_limited_carries_retry_after(self) -> None:
        error = RateLimitedError("slow down", retry_after=12.5, status_code=429)
        assert error.retry_after == 12.5
        assert str(error) == "slow down"

    def test_context_defaults_to_empty(self) -> None:
        assert OrderCreationError("failed", quote_id="q1").context == {}


class TestCallerErrors:
    """Test errors raised back to the caller."""

    @pytest.mark.parametrize("error", [
        InvalidRequestError("bad amount", field="amount", value="-1"),
        EntityNotFoundError("no alert", kind="alert", entity_id="a1", owner="alice"),
        SessionNotFoundError("no session", identity="alice"),
        StateTransitionError("not now", current_state="awaiting_funds", attempted_transition="confirm_quote"),
    ])
    def test_caller_errors_are_unrecoverable(self, error) -> None:
        assert isinstance(error, CallerError)
        assert isinstance(error, UnrecoverableError)
        assert error.recoverable is False

    def test_invalid_request_fields(self) -> None:
        error = InvalidRequestError("bad amount", field="amount", value="-1", context={"owner": "alice"})

        assert error.field == "amount"
        assert error.value == "-1"
        assert error.context == {"owner": "alice"}


class TestSystemFailures:
    """Test internal failure classification."""

    def test_system_failures(self) -> None:
        persistence = PersistenceError("disk full", operation="save", target="alert")
        malformed = MalformedEntityError("cannot decode", kind="alert", entity_id="a1")

        for error in (persistence, malformed):
            assert isinstance(error, SystemFailureError)
            assert error.recoverable is False
        assert persistence.operation == "save"
        assert malformed.entity_id == "a1"

    def test_system_failures_are_not_caller_errors(self) -> None:
        assert not isinstance(PersistenceError("x"), CallerError)

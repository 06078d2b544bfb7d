"""Tests for swap lifecycle transitions."""

import pytest

from shiftflow.errors import StateTransitionError
from shiftflow.models.session import TERMINAL_STATES, TERMINAL_STATUSES, SwapState
from shiftflow.state.transitions import (
    ALLOWED_TRANSITIONS,
    STATUS_TO_TERMINAL_STATE,
    is_allowed,
    require_state,
    validate_transition,
)


class TestTransitionTable:
    """Test the allowed transition table."""

    def test_happy_path_is_allowed(self):
        """Test the forward path through the lifecycle."""
        path = [
            SwapState.COLLECTING_PARAMETERS,
            SwapState.AWAITING_CONFIRMATION,
            SwapState.AWAITING_DESTINATION_ADDRESS,
            SwapState.AWAITING_FUNDS,
            SwapState.COMPLETE,
        ]
        for current, target in zip(path, path[1:]):
            assert is_allowed(current, target)

    def test_states_cannot_be_skipped(self):
        """Test that no state may be skipped."""
        assert not is_allowed(SwapState.COLLECTING_PARAMETERS, SwapState.AWAITING_FUNDS)
        assert not is_allowed(SwapState.AWAITING_CONFIRMATION, SwapState.COMPLETE)

    def test_terminal_states_have_no_successors(self):
        """Test that terminal states are final."""
        for state in TERMINAL_STATES:
            assert state not in ALLOWED_TRANSITIONS
            for target in SwapState:
                assert not is_allowed(state, target)

    def test_every_terminal_status_maps_to_a_state(self):
        """Test the exchange status to final state mapping."""
        assert set(STATUS_TO_TERMINAL_STATE) == set(TERMINAL_STATUSES)
        assert STATUS_TO_TERMINAL_STATE["refunded"] == SwapState.REFUNDED
        assert "processing" not in STATUS_TO_TERMINAL_STATE


class TestValidation:
    """Test transition validation helpers."""

    def test_validate_transition_accepts_allowed(self):
        """Test that an allowed move does not raise."""
        validate_transition(SwapState.AWAITING_FUNDS, SwapState.EXPIRED, "alice")

    def test_validate_transition_rejects_invalid(self):
        """Test that an invalid move raises with the states attached."""
        with pytest.raises(StateTransitionError) as exc_info:
            validate_transition(SwapState.COMPLETE, SwapState.AWAITING_FUNDS, "alice")

        error = exc_info.value
        assert error.current_state == "complete"
        assert error.attempted_transition == "awaiting_funds"
        assert error.context["identity"] == "alice"

    def test_require_state(self):
        """Test that a step from the wrong state raises."""
        require_state(SwapState.AWAITING_CONFIRMATION, SwapState.AWAITING_CONFIRMATION, "confirm")

        with pytest.raises(StateTransitionError, match="Cannot confirm while collecting_parameters"):
            require_state(SwapState.COLLECTING_PARAMETERS, SwapState.AWAITING_CONFIRMATION, "confirm")

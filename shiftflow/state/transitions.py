"""
Allowed swap lifecycle transitions.

collecting_parameters -> awaiting_confirmation -> awaiting_destination_address
-> awaiting_funds -> {complete | refunded | rejected | expired}
"""

from typing import Optional

from ..errors import StateTransitionError
from ..models.session import ShiftStatus, SwapState

ALLOWED_TRANSITIONS: dict[SwapState, frozenset[SwapState]] = {
    SwapState.COLLECTING_PARAMETERS: frozenset({SwapState.AWAITING_CONFIRMATION}),
    SwapState.AWAITING_CONFIRMATION: frozenset({SwapState.AWAITING_DESTINATION_ADDRESS}),
    SwapState.AWAITING_DESTINATION_ADDRESS: frozenset({SwapState.AWAITING_FUNDS}),
    SwapState.AWAITING_FUNDS: frozenset({
        SwapState.COMPLETE,
        SwapState.REFUNDED,
        SwapState.REJECTED,
        SwapState.EXPIRED,
    }),
}

# Exchange statuses that end the lifecycle, mapped to the final session state
STATUS_TO_TERMINAL_STATE: dict[str, SwapState] = {
    ShiftStatus.COMPLETE.value: SwapState.COMPLETE,
    ShiftStatus.REFUNDED.value: SwapState.REFUNDED,
    ShiftStatus.REJECTED.value: SwapState.REJECTED,
    ShiftStatus.EXPIRED.value: SwapState.EXPIRED,
}


def is_allowed(current: SwapState, target: SwapState) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def validate_transition(current: SwapState, target: SwapState, identity: Optional[str] = None) -> None:
    """Raise StateTransitionError unless current -> target is in the table."""
    if not is_allowed(current, target):
        raise StateTransitionError(
            f"Cannot move from {current.value} to {target.value}",
            current_state=current.value,
            attempted_transition=target.value,
            context={"identity": identity},
        )


def require_state(current: SwapState, expected: SwapState, step: str, identity: Optional[str] = None) -> None:
    """Raise StateTransitionError if a step is attempted from the wrong state."""
    if current != expected:
        raise StateTransitionError(
            f"Cannot {step} while {current.value}",
            current_state=current.value,
            attempted_transition=step,
            context={"identity": identity, "expected_state": expected.value},
        )

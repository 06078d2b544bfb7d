"""
Manual swap session models.

A Session is immutable; the ConversationStore swaps in a new instance on
every change. Timers are referenced only by the opaque tokens handed out by
the task scheduler, which keeps sessions serializable.
"""

import uuid
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..utils.time import format_timestamp, utc_now


class SwapState(str, Enum):
    """Manual swap lifecycle states."""
    COLLECTING_PARAMETERS = "collecting_parameters"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    AWAITING_DESTINATION_ADDRESS = "awaiting_destination_address"
    AWAITING_FUNDS = "awaiting_funds"
    COMPLETE = "complete"
    REFUNDED = "refunded"
    REJECTED = "rejected"
    EXPIRED = "expired"


class ShiftStatus(str, Enum):
    """Statuses reported by the exchange for a shift."""
    PENDING = "pending"
    WAITING = "waiting"
    PROCESSING = "processing"
    SETTLING = "settling"
    COMPLETE = "complete"
    REFUNDED = "refunded"
    REJECTED = "rejected"
    EXPIRED = "expired"


TERMINAL_STATUSES = frozenset({
    ShiftStatus.COMPLETE.value,
    ShiftStatus.REFUNDED.value,
    ShiftStatus.REJECTED.value,
    ShiftStatus.EXPIRED.value,
})

TERMINAL_STATES = frozenset({
    SwapState.COMPLETE,
    SwapState.REFUNDED,
    SwapState.REJECTED,
    SwapState.EXPIRED,
})

# States in which an unconfirmed quote bounds the session lifetime
QUOTE_BOUND_STATES = frozenset({
    SwapState.AWAITING_CONFIRMATION,
    SwapState.AWAITING_DESTINATION_ADDRESS,
})


class CancelOutcome(str, Enum):
    """Result of a user cancellation request."""
    NO_SESSION = "no_session"
    DISCARDED = "discarded"
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"
    CANCEL_FAILED = "cancel_failed"


@dataclass(frozen=True)
class SwapDetails:
    """Swap fields collected over the course of a session."""
    from_coin: Optional[str] = None
    from_network: Optional[str] = None
    to_coin: Optional[str] = None
    to_network: Optional[str] = None
    amount: Optional[str] = None
    quote_id: Optional[str] = None
    quote_expires_at: Optional[datetime] = None
    quoted_rate: Optional[str] = None
    settle_amount: Optional[str] = None
    destination_address: Optional[str] = None
    refund_address: Optional[str] = None
    deposit_address: Optional[str] = None
    deposit_amount: Optional[str] = None

    def merge(self, **updates: Any) -> "SwapDetails":
        """Return a copy with the given non-None fields replaced."""
        known = {f.name for f in fields(self)}
        unknown = set(updates) - known
        if unknown:
            raise ValueError(f"Unknown swap fields: {sorted(unknown)}")
        return replace(self, **{k: v for k, v in updates.items() if v is not None})

    @property
    def has_parameters(self) -> bool:
        return bool(self.from_coin and self.to_coin and self.amount)


@dataclass(frozen=True)
class Session:
    """Per-identity manual swap session."""

    identity: str
    state: SwapState = SwapState.COLLECTING_PARAMETERS
    details: SwapDetails = field(default_factory=SwapDetails)
    shift_id: Optional[str] = None
    last_status: Optional[str] = None
    started_at: datetime = field(default_factory=utc_now)
    order_created_at: Optional[datetime] = None

    # Distinguishes successive flows for the same identity
    flow_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    # Scheduler tokens owned by this session
    poll_token: Optional[str] = None
    quote_timer_token: Optional[str] = None

    # Delayed external cancel; not owned, it re-validates shift_id when it fires
    pending_cancel_token: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def has_external_order(self) -> bool:
        return self.shift_id is not None

    @property
    def cancel_scheduled(self) -> bool:
        return self.pending_cancel_token is not None

    def owned_tokens(self) -> list[str]:
        """Timer tokens to cancel when this session goes away."""
        return [t for t in (self.poll_token, self.quote_timer_token) if t]

    def with_details(self, **updates: Any) -> "Session":
        return replace(self, details=self.details.merge(**updates))

    def to_dict(self) -> dict[str, Any]:
        details = {}
        for f in fields(self.details):
            value = getattr(self.details, f.name)
            details[f.name] = format_timestamp(value) if isinstance(value, datetime) else value

        return {
            "id": self.identity,
            "owner": self.identity,
            "active": not self.is_terminal,
            "state": self.state.value,
            "details": details,
            "shift_id": self.shift_id,
            "last_status": self.last_status,
            "started_at": format_timestamp(self.started_at),
            "flow_id": self.flow_id,
            "order_created_at": format_timestamp(self.order_created_at),
            "poll_token": self.poll_token,
            "quote_timer_token": self.quote_timer_token,
            "pending_cancel_token": self.pending_cancel_token,
        }

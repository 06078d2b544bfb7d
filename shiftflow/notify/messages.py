"""
Plain-English notification texts.

Presentation (emoji, markdown, localization) belongs to whatever renders
these for the owner; the builders here only assemble the facts.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..utils.time import format_countdown, format_timestamp, seconds_until


class NotificationEvent(str, Enum):
    """Kinds of owner notification, used by destination event filters."""
    INFO = "info"
    ALERT_TRIGGERED = "alert_triggered"
    DCA_EXECUTED = "dca_executed"
    DCA_FAILED = "dca_failed"
    DCA_COMPLETED = "dca_completed"
    LIMIT_TRIGGERED = "limit_triggered"
    LIMIT_EXECUTED = "limit_executed"
    LIMIT_FAILED = "limit_failed"
    DEPOSIT_INSTRUCTIONS = "deposit_instructions"
    STATUS_CHANGED = "status_changed"
    SWAP_FINISHED = "swap_finished"
    QUOTE_EXPIRED = "quote_expired"
    SWAP_ERROR = "swap_error"
    CANCEL_SCHEDULED = "cancel_scheduled"
    CANCELLED = "cancelled"
    CANCEL_FAILED = "cancel_failed"


# Shift status display table: title, description, typical minutes in state
STATUS_DESCRIPTIONS: dict[str, tuple[str, str, int]] = {
    "pending": ("Pending", "Waiting to receive your deposit", 0),
    "waiting": ("Waiting for Deposit", "Send your funds to the deposit address", 0),
    "processing": ("Processing", "Deposit received, the swap is being processed", 5),
    "settling": ("Settling", "Sending funds to your wallet", 10),
    "complete": ("Complete", "Swap completed successfully", 0),
    "refunded": ("Refunded", "Funds have been returned to your refund address", 0),
    "expired": ("Expired", "This swap has expired", 0),
    "rejected": ("Rejected", "This swap was rejected", 0),
}


def describe_status(status: str) -> str:
    title, description, avg_minutes = STATUS_DESCRIPTIONS.get(
        status, (status.capitalize(), "Status updated", 0)
    )
    text = f"{title}: {description}"
    if avg_minutes:
        text += f" (usually about {avg_minutes} min)"
    return text


def alert_triggered(pair: str, direction: str, target_rate: float, rate: float) -> str:
    return f"Price alert: {pair} is now {rate} ({direction} your target of {target_rate})."


def deposit_instructions(deposit: dict[str, Any], expires_at: Optional[datetime] = None) -> str:
    text = (
        f"Send {deposit['deposit_amount']} {deposit['deposit_coin'].upper()} "
        f"to {deposit['deposit_address']} (order {deposit['shift_id']})."
    )
    if expires_at is not None:
        text += f" Expires in {format_countdown(seconds_until(expires_at))}."
    return text


def dca_executed(pair: str, execution: int, max_executions: Optional[int], deposit: dict[str, Any]) -> str:
    progress = f"{execution}/{max_executions}" if max_executions else str(execution)
    return f"DCA {pair} execution {progress} created. " + deposit_instructions(deposit)


def dca_failed(pair: str, error: str, next_execution_at: datetime) -> str:
    return (
        f"DCA {pair} execution failed: {error}. "
        f"Next attempt at {format_timestamp(next_execution_at)}."
    )


def dca_completed(pair: str, total_executions: int) -> str:
    return f"DCA {pair} completed after {total_executions} executions."


def limit_triggered(pair: str, direction: str, target_rate: float, rate: float) -> str:
    return (
        f"Limit order triggered: {pair} reached {rate} "
        f"({direction} {target_rate}). Creating your swap."
    )


def limit_executed(pair: str, deposit: dict[str, Any]) -> str:
    return f"Limit order {pair} executed. " + deposit_instructions(deposit)


def limit_failed(pair: str, error: str) -> str:
    return f"Limit order {pair} triggered but the swap could not be created: {error}. The order is closed."


def status_changed(shift_id: str, status: str) -> str:
    return f"Order {shift_id}: {describe_status(status)}."


def swap_finished(shift_id: str, status: str) -> str:
    return f"Order {shift_id} finished. {describe_status(status)}."


def quote_expired() -> str:
    return "Your quote expired before the swap was confirmed. Start again to get a fresh quote."


def swap_error(stage: str, error: str) -> str:
    return f"Could not {stage}: {error}. Your swap request was discarded."


def cancel_scheduled(remaining_seconds: float) -> str:
    minutes = max(1, int((remaining_seconds + 59) // 60))
    return (
        "Orders can only be cancelled a few minutes after creation. "
        f"Cancellation is scheduled in about {minutes} minute(s). Please do not send any funds."
    )


def cancelled() -> str:
    return "Your order has been cancelled."


def cancel_failed(error: str) -> str:
    return (
        f"Could not cancel the order ({error}). It may have already expired or been processed. "
        "Please do not send any funds."
    )


def discarded() -> str:
    return "Your pending swap request has been cancelled."

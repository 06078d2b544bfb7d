"""
Automation entity models.

Alerts, DCA orders and limit orders are plain mutable dataclasses. They are
persisted as dictionaries, so every load from a repository yields a fresh
copy; engines mutate that copy and save it back under the collection lock.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Optional

from ..errors import MalformedEntityError
from ..utils.time import format_timestamp, next_execution_time, parse_timestamp, utc_now


class EntityKind(str, Enum):
    """Repository collections."""
    ALERT = "alert"
    DCA_ORDER = "dca_order"
    LIMIT_ORDER = "limit_order"
    SESSION = "session"


class Direction(str, Enum):
    """Side of the target rate a trigger waits for."""
    ABOVE = "above"
    BELOW = "below"


class Frequency(str, Enum):
    """DCA execution cadence."""
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def new_entity_id() -> str:
    """Durable entity id, valid across process restarts."""
    return uuid.uuid4().hex


def _malformed(kind: EntityKind, data: dict[str, Any], error: Exception) -> MalformedEntityError:
    return MalformedEntityError(
        f"Cannot decode stored {kind.value}: {error}",
        kind=kind.value,
        entity_id=data.get("id") if isinstance(data, dict) else None,
        context={"error": str(error)},
    )


@dataclass
class Alert:
    """User-defined price alert."""

    kind: ClassVar[EntityKind] = EntityKind.ALERT

    owner: str
    from_coin: str
    to_coin: str
    target_rate: float
    direction: Direction
    id: str = field(default_factory=new_entity_id)
    active: bool = True
    triggered: bool = False
    triggered_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utc_now)

    @property
    def pair(self) -> str:
        return f"{self.from_coin.upper()}/{self.to_coin.upper()}"

    def mark_triggered(self, timestamp: datetime) -> None:
        """Deactivate on trigger; a triggered alert is never active."""
        self.active = False
        self.triggered = True
        self.triggered_at = timestamp

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner": self.owner,
            "from_coin": self.from_coin,
            "to_coin": self.to_coin,
            "target_rate": self.target_rate,
            "direction": self.direction.value,
            "active": self.active,
            "triggered": self.triggered,
            "triggered_at": format_timestamp(self.triggered_at),
            "created_at": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Alert":
        try:
            return cls(
                id=data["id"],
                owner=data["owner"],
                from_coin=data["from_coin"],
                to_coin=data["to_coin"],
                target_rate=float(data["target_rate"]),
                direction=Direction(data["direction"]),
                active=bool(data.get("active", True)),
                triggered=bool(data.get("triggered", False)),
                triggered_at=parse_timestamp(data.get("triggered_at")),
                created_at=parse_timestamp(data.get("created_at")) or utc_now(),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise _malformed(cls.kind, data, e) from e


@dataclass
class ExecutionRecord:
    """One DCA execution attempt; exactly one of shift_id or error is set."""
    executed_at: datetime
    shift_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.shift_id is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "executed_at": format_timestamp(self.executed_at),
            "shift_id": self.shift_id,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExecutionRecord":
        return cls(
            executed_at=parse_timestamp(data["executed_at"]),
            shift_id=data.get("shift_id"),
            error=data.get("error"),
        )


@dataclass
class DCAOrder:
    """Recurring fixed-amount swap order."""

    kind: ClassVar[EntityKind] = EntityKind.DCA_ORDER

    owner: str
    from_coin: str
    to_coin: str
    amount: str
    frequency: Frequency
    destination_address: str
    next_execution_at: datetime
    refund_address: Optional[str] = None
    from_network: Optional[str] = None
    to_network: Optional[str] = None
    max_executions: Optional[int] = None
    id: str = field(default_factory=new_entity_id)
    active: bool = True
    total_executions: int = 0
    last_executed_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utc_now)
    history: list[ExecutionRecord] = field(default_factory=list)

    @property
    def pair(self) -> str:
        return f"{self.from_coin.upper()}/{self.to_coin.upper()}"

    @property
    def cap_reached(self) -> bool:
        return self.max_executions is not None and self.total_executions >= self.max_executions

    def reschedule(self, anchor: datetime) -> None:
        """Next execution is always computed from the anchor, never caught up."""
        self.next_execution_at = next_execution_time(self.frequency, anchor)

    def record_success(self, shift_id: str, now: datetime) -> None:
        self.total_executions += 1
        self.last_executed_at = now
        self.reschedule(now)
        self.history.append(ExecutionRecord(executed_at=now, shift_id=shift_id))
        if self.cap_reached:
            self.active = False

    def record_failure(self, error: str, now: datetime) -> None:
        self.reschedule(now)
        self.history.append(ExecutionRecord(executed_at=now, error=error))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner": self.owner,
            "from_coin": self.from_coin,
            "to_coin": self.to_coin,
            "from_network": self.from_network,
            "to_network": self.to_network,
            "amount": self.amount,
            "frequency": self.frequency.value,
            "destination_address": self.destination_address,
            "refund_address": self.refund_address,
            "active": self.active,
            "total_executions": self.total_executions,
            "max_executions": self.max_executions,
            "last_executed_at": format_timestamp(self.last_executed_at),
            "next_execution_at": format_timestamp(self.next_execution_at),
            "created_at": format_timestamp(self.created_at),
            "history": [record.to_dict() for record in self.history],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DCAOrder":
        try:
            max_executions = data.get("max_executions")
            next_execution_at = parse_timestamp(data["next_execution_at"])
            if next_execution_at is None:
                raise ValueError("next_execution_at is missing")
            return cls(
                id=data["id"],
                owner=data["owner"],
                from_coin=data["from_coin"],
                to_coin=data["to_coin"],
                from_network=data.get("from_network"),
                to_network=data.get("to_network"),
                amount=str(data["amount"]),
                frequency=Frequency(data["frequency"]),
                destination_address=data["destination_address"],
                refund_address=data.get("refund_address"),
                active=bool(data.get("active", True)),
                total_executions=int(data.get("total_executions", 0)),
                max_executions=int(max_executions) if max_executions is not None else None,
                last_executed_at=parse_timestamp(data.get("last_executed_at")),
                next_execution_at=next_execution_at,
                created_at=parse_timestamp(data.get("created_at")) or utc_now(),
                history=[ExecutionRecord.from_dict(r) for r in data.get("history", [])],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise _malformed(cls.kind, data, e) from e


@dataclass
class LimitOrder:
    """Conditional one-shot swap order."""

    kind: ClassVar[EntityKind] = EntityKind.LIMIT_ORDER

    owner: str
    from_coin: str
    to_coin: str
    amount: str
    target_rate: float
    direction: Direction
    destination_address: str
    refund_address: Optional[str] = None
    from_network: Optional[str] = None
    to_network: Optional[str] = None
    id: str = field(default_factory=new_entity_id)
    active: bool = True
    created_at: datetime = field(default_factory=utc_now)
    executed_at: Optional[datetime] = None
    shift_id: Optional[str] = None

    @property
    def pair(self) -> str:
        return f"{self.from_coin.upper()}/{self.to_coin.upper()}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner": self.owner,
            "from_coin": self.from_coin,
            "to_coin": self.to_coin,
            "from_network": self.from_network,
            "to_network": self.to_network,
            "amount": self.amount,
            "target_rate": self.target_rate,
            "direction": self.direction.value,
            "destination_address": self.destination_address,
            "refund_address": self.refund_address,
            "active": self.active,
            "created_at": format_timestamp(self.created_at),
            "executed_at": format_timestamp(self.executed_at),
            "shift_id": self.shift_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LimitOrder":
        try:
            return cls(
                id=data["id"],
                owner=data["owner"],
                from_coin=data["from_coin"],
                to_coin=data["to_coin"],
                from_network=data.get("from_network"),
                to_network=data.get("to_network"),
                amount=str(data["amount"]),
                target_rate=float(data["target_rate"]),
                direction=Direction(data["direction"]),
                destination_address=data["destination_address"],
                refund_address=data.get("refund_address"),
                active=bool(data.get("active", True)),
                created_at=parse_timestamp(data.get("created_at")) or utc_now(),
                executed_at=parse_timestamp(data.get("executed_at")),
                shift_id=data.get("shift_id"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise _malformed(cls.kind, data, e) from e

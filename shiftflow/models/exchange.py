"""Exchange payload models for quotes, shifts and status reports."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..errors import ExchangeError
from ..utils.time import parse_timestamp


@dataclass(frozen=True)
class SwapRequest:
    """Everything needed to quote and create one shift."""
    from_coin: str
    to_coin: str
    amount: str
    destination_address: str
    refund_address: Optional[str] = None
    from_network: Optional[str] = None
    to_network: Optional[str] = None


@dataclass(frozen=True)
class Quote:
    """Time-bounded price commitment from the exchange."""
    id: str
    from_coin: str
    to_coin: str
    deposit_amount: str
    settle_amount: str
    rate: str
    expires_at: datetime
    from_network: Optional[str] = None
    to_network: Optional[str] = None

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Quote":
        try:
            return cls(
                id=payload["id"],
                from_coin=str(payload["depositCoin"]).lower(),
                to_coin=str(payload["settleCoin"]).lower(),
                deposit_amount=str(payload["depositAmount"]),
                settle_amount=str(payload["settleAmount"]),
                rate=str(payload["rate"]),
                expires_at=parse_timestamp(_iso(payload["expiresAt"])),
                from_network=payload.get("depositNetwork"),
                to_network=payload.get("settleNetwork"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ExchangeError(f"Unexpected quote payload: {e}", context={"payload": payload}) from e


@dataclass(frozen=True)
class ShiftOrder:
    """A created shift and the deposit instructions for it."""
    id: str
    deposit_address: str
    deposit_amount: str
    deposit_coin: str
    status: str
    settle_amount: Optional[str] = None
    settle_coin: Optional[str] = None
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "ShiftOrder":
        try:
            return cls(
                id=payload["id"],
                deposit_address=payload["depositAddress"],
                deposit_amount=str(payload.get("depositAmount", "")),
                deposit_coin=str(payload["depositCoin"]).lower(),
                status=payload.get("status", "waiting"),
                settle_amount=_opt_str(payload.get("settleAmount")),
                settle_coin=_opt_str(payload.get("settleCoin")),
                created_at=parse_timestamp(_iso(payload.get("createdAt"))),
                expires_at=parse_timestamp(_iso(payload.get("expiresAt"))),
                raw=payload,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ExchangeError(f"Unexpected shift payload: {e}", context={"payload": payload}) from e

    def deposit_instructions(self) -> dict[str, Any]:
        return {
            "shift_id": self.id,
            "deposit_address": self.deposit_address,
            "deposit_amount": self.deposit_amount,
            "deposit_coin": self.deposit_coin,
        }


@dataclass(frozen=True)
class ShiftStatusReport:
    """Point-in-time status of a shift."""
    order_id: str
    status: str
    deposit_hash: Optional[str] = None
    settle_hash: Optional[str] = None
    settle_amount: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "ShiftStatusReport":
        try:
            return cls(
                order_id=payload["id"],
                status=str(payload["status"]),
                deposit_hash=payload.get("depositHash"),
                settle_hash=payload.get("settleHash"),
                settle_amount=_opt_str(payload.get("settleAmount")),
                raw=payload,
            )
        except (KeyError, TypeError) as e:
            raise ExchangeError(f"Unexpected status payload: {e}", context={"payload": payload}) from e


def _opt_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _iso(value: Any) -> Any:
    """Accept the trailing 'Z' the exchange uses for UTC."""
    if isinstance(value, str) and value.endswith("Z"):
        return value[:-1] + "+00:00"
    return value

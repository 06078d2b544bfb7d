"""Conditional one-shot limit order engine."""

from typing import Any, Optional

from ..errors import ExchangeError
from ..exchange.base import RateProvider
from ..exchange.executor import QuoteExecutor
from ..models.entities import EntityKind, LimitOrder
from ..models.exchange import SwapRequest
from ..notify import messages
from ..notify.messages import NotificationEvent
from .base import CycleEngine, ItemResult, parse_direction, require_positive, require_text
from .triggers import crossed_inclusive


class LimitOrderEngine(CycleEngine[LimitOrder]):
    """
    Evaluates active limit orders each cycle.

    A triggered order is deactivated and persisted before execution is
    attempted, so it is executed at most once. A failed execution is not
    retried; the owner falls back to a manual swap.
    """

    name = "limit_orders"
    kind = EntityKind.LIMIT_ORDER

    def __init__(self, repository, notifier, rate_provider: RateProvider, executor: QuoteExecutor, **kwargs):
        super().__init__(repository, notifier, **kwargs)
        self.rate_provider = rate_provider
        self.executor = executor

    def decode(self, record: dict[str, Any]) -> LimitOrder:
        return LimitOrder.from_dict(record)

    def create_order(
        self,
        owner: str,
        from_coin: str,
        to_coin: str,
        amount: str,
        target_rate: float,
        direction,
        destination_address: str,
        refund_address: Optional[str] = None,
        from_network: Optional[str] = None,
        to_network: Optional[str] = None,
    ) -> LimitOrder:
        require_positive(amount, "amount")
        order = LimitOrder(
            owner=require_text(owner, "owner"),
            from_coin=require_text(from_coin, "from_coin").lower(),
            to_coin=require_text(to_coin, "to_coin").lower(),
            amount=str(amount),
            target_rate=require_positive(target_rate, "target_rate"),
            direction=parse_direction(direction),
            destination_address=require_text(destination_address, "destination_address"),
            refund_address=refund_address,
            from_network=from_network,
            to_network=to_network,
            created_at=self.clock(),
        )
        self.save(order)

        self.logger.info(
            "Limit order created",
            owner=owner,
            order_id=order.id,
            pair=order.pair,
            direction=order.direction.value,
            target_rate=order.target_rate,
        )
        return order

    def list_active(self, owner: str) -> list[LimitOrder]:
        return self.list_for_owner(owner)

    def list_orders(self, owner: str) -> list[LimitOrder]:
        """All orders for the owner, executed ones included."""
        return self.list_for_owner(owner, active_only=False)

    def get_order(self, owner: str, order_id: str) -> LimitOrder:
        return self.get_owned(owner, order_id)

    def cancel(self, owner: str, order_id: str) -> bool:
        """Delete an active order. Triggered orders can no longer be cancelled."""
        with self._lock:
            order = self.reload(order_id)
            if order is None or order.owner != owner:
                return False
            self.repository.delete(self.kind, order_id)

        self.logger.info("Limit order cancelled", owner=owner, order_id=order_id)
        return True

    def process(self, order: LimitOrder) -> ItemResult:
        try:
            rate = self.rate_provider.fetch_rate(order.from_coin, order.to_coin)
        except ExchangeError as e:
            self.logger.warning("Rate unavailable for limit order", order_id=order.id, pair=order.pair, error=str(e))
            return ItemResult(failed=True, error=str(e))

        with self._lock:
            current = self.reload(order.id)
            if current is None:
                return ItemResult(skipped=True)

            if not crossed_inclusive(current.direction, rate, current.target_rate):
                return ItemResult()

            # Consumed before execution: one attempt, whatever the outcome
            current.active = False
            self.save(current)

        self.logger.info(
            "Limit order triggered",
            owner=current.owner,
            order_id=current.id,
            pair=current.pair,
            rate=rate,
            target_rate=current.target_rate,
        )
        self.notifier.notify(
            current.owner,
            messages.limit_triggered(current.pair, current.direction.value, current.target_rate, rate),
            data={"order_id": current.id, "rate": rate},
            event=NotificationEvent.LIMIT_TRIGGERED,
        )

        request = SwapRequest(
            from_coin=current.from_coin,
            to_coin=current.to_coin,
            amount=current.amount,
            destination_address=current.destination_address,
            refund_address=current.refund_address,
            from_network=current.from_network,
            to_network=current.to_network,
        )

        try:
            shift = self.executor.execute(request)
        except ExchangeError as e:
            self.logger.warning("Limit order execution failed", owner=current.owner, order_id=current.id, error=str(e))
            self.notifier.notify(
                current.owner,
                messages.limit_failed(current.pair, str(e)),
                data={"order_id": current.id, "error": str(e)},
                event=NotificationEvent.LIMIT_FAILED,
            )
            return ItemResult(triggered=True, failed=True, error=str(e))

        with self._lock:
            latest = self.reload(current.id, active_only=False) or current
            latest.shift_id = shift.id
            latest.executed_at = self.clock()
            self.save(latest)

        self.logger.info("Limit order executed", owner=latest.owner, order_id=latest.id, shift_id=shift.id)
        self.notifier.notify(
            latest.owner,
            messages.limit_executed(latest.pair, shift.deposit_instructions()),
            data=dict(shift.deposit_instructions(), order_id=latest.id),
            event=NotificationEvent.LIMIT_EXECUTED,
        )
        return ItemResult(triggered=True, executed=True)

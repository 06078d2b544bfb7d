"""Recurring dollar-cost-averaging order scheduler."""

from datetime import datetime
from typing import Any, Optional

from ..errors import ExchangeError, InvalidRequestError
from ..exchange.executor import QuoteExecutor
from ..models.entities import DCAOrder, EntityKind, Frequency
from ..models.exchange import SwapRequest
from ..notify import messages
from ..notify.messages import NotificationEvent
from ..utils.time import ensure_utc, next_execution_time
from .base import CycleEngine, ItemResult, require_positive, require_text


def parse_frequency(frequency: Any) -> Frequency:
    try:
        return Frequency(getattr(frequency, "value", frequency))
    except ValueError as e:
        raise InvalidRequestError(
            "Frequency must be hourly, daily, weekly or monthly",
            field="frequency",
            value=frequency,
        ) from e


def parse_max_executions(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        if isinstance(value, bool):
            raise ValueError("boolean")
        number = float(value)
        if number != int(number) or number < 1:
            raise ValueError("not a positive integer")
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidRequestError(
            "max_executions must be a positive integer",
            field="max_executions",
            value=value,
        ) from e
    return int(number)


class DCAScheduler(CycleEngine[DCAOrder]):
    """
    Executes due DCA orders.

    Each cycle selects active orders whose next execution time has passed.
    Missed cycles are not caught up: the next execution is always computed
    from the time of the attempt. Failures keep the order active and retry
    at the normal cadence. Reaching max_executions deactivates the order.
    """

    name = "dca"
    kind = EntityKind.DCA_ORDER

    def __init__(self, repository, notifier, executor: QuoteExecutor, **kwargs):
        super().__init__(repository, notifier, **kwargs)
        self.executor = executor

    def decode(self, record: dict[str, Any]) -> DCAOrder:
        return DCAOrder.from_dict(record)

    def select(self, items: list[DCAOrder], now: datetime) -> list[DCAOrder]:
        return [order for order in items if ensure_utc(order.next_execution_at) <= now]

    def create_order(
        self,
        owner: str,
        from_coin: str,
        to_coin: str,
        amount: str,
        frequency,
        destination_address: str,
        refund_address: Optional[str] = None,
        from_network: Optional[str] = None,
        to_network: Optional[str] = None,
        max_executions: Optional[int] = None,
    ) -> DCAOrder:
        require_positive(amount, "amount")
        max_executions = parse_max_executions(max_executions)

        now = self.clock()
        parsed_frequency = parse_frequency(frequency)
        order = DCAOrder(
            owner=require_text(owner, "owner"),
            from_coin=require_text(from_coin, "from_coin").lower(),
            to_coin=require_text(to_coin, "to_coin").lower(),
            amount=str(amount),
            frequency=parsed_frequency,
            destination_address=require_text(destination_address, "destination_address"),
            refund_address=refund_address,
            from_network=from_network,
            to_network=to_network,
            max_executions=max_executions,
            next_execution_at=next_execution_time(parsed_frequency, now),
            created_at=now,
        )
        self.save(order)

        self.logger.info(
            "DCA order created",
            owner=owner,
            order_id=order.id,
            pair=order.pair,
            amount=order.amount,
            frequency=order.frequency.value,
            next_execution_at=order.next_execution_at.isoformat(),
        )
        return order

    def list_active(self, owner: str) -> list[DCAOrder]:
        return self.list_for_owner(owner)

    def list_orders(self, owner: str) -> list[DCAOrder]:
        """All orders for the owner, paused and completed ones included."""
        return self.list_for_owner(owner, active_only=False)

    def get_order(self, owner: str, order_id: str) -> DCAOrder:
        return self.get_owned(owner, order_id)

    def pause(self, owner: str, order_id: str) -> bool:
        with self._lock:
            order = self.reload(order_id, active_only=False)
            if order is None or order.owner != owner:
                return False
            order.active = False
            self.save(order)

        self.logger.info("DCA order paused", owner=owner, order_id=order_id)
        return True

    def resume(self, owner: str, order_id: str) -> bool:
        """Reactivate an order; the next execution is recomputed from now."""
        with self._lock:
            order = self.reload(order_id, active_only=False)
            if order is None or order.owner != owner:
                return False
            if order.cap_reached:
                raise InvalidRequestError(
                    "Order already reached its maximum executions",
                    field="max_executions",
                    value=order.max_executions,
                )
            order.active = True
            order.reschedule(self.clock())
            self.save(order)

        self.logger.info(
            "DCA order resumed",
            owner=owner,
            order_id=order_id,
            next_execution_at=order.next_execution_at.isoformat(),
        )
        return True

    def delete(self, owner: str, order_id: str) -> bool:
        with self._lock:
            order = self.reload(order_id, active_only=False)
            if order is None or order.owner != owner:
                return False
            self.repository.delete(self.kind, order_id)

        self.logger.info("DCA order deleted", owner=owner, order_id=order_id)
        return True

    def process(self, order: DCAOrder) -> ItemResult:
        now = self.clock()

        with self._lock:
            current = self.reload(order.id)
            if current is None or ensure_utc(current.next_execution_at) > now:
                return ItemResult(skipped=True)

            if current.cap_reached:
                current.active = False
                self.save(current)
                completed = True
            else:
                completed = False

        if completed:
            self._notify_completed(current)
            return ItemResult(triggered=True)

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
            return self._record_failure(current, str(e), now)
        except Exception as e:
            self.logger.exception("Unexpected DCA execution error", owner=current.owner, order_id=current.id)
            return self._record_failure(current, f"Unexpected error: {e}", now)

        with self._lock:
            latest = self.reload(current.id, active_only=False)
            if latest is None:
                self.logger.warning(
                    "DCA order deleted during execution",
                    owner=current.owner,
                    order_id=current.id,
                    shift_id=shift.id,
                )
                return ItemResult(triggered=True, executed=True)
            latest.record_success(shift.id, now)
            self.save(latest)

        self.logger.info(
            "DCA order executed",
            owner=latest.owner,
            order_id=latest.id,
            shift_id=shift.id,
            total_executions=latest.total_executions,
            max_executions=latest.max_executions,
        )
        self.notifier.notify(
            latest.owner,
            messages.dca_executed(latest.pair, latest.total_executions, latest.max_executions, shift.deposit_instructions()),
            data=dict(shift.deposit_instructions(), order_id=latest.id),
            event=NotificationEvent.DCA_EXECUTED,
        )
        if latest.cap_reached:
            self._notify_completed(latest)
        return ItemResult(triggered=True, executed=True)

    def _record_failure(self, order: DCAOrder, error: str, now: datetime) -> ItemResult:
        with self._lock:
            latest = self.reload(order.id, active_only=False)
            if latest is None:
                return ItemResult(triggered=True, failed=True, error=error)
            latest.record_failure(error, now)
            self.save(latest)

        self.logger.warning(
            "DCA execution failed",
            owner=latest.owner,
            order_id=latest.id,
            error=error,
            next_execution_at=latest.next_execution_at.isoformat(),
        )
        self.notifier.notify(
            latest.owner,
            messages.dca_failed(latest.pair, error, latest.next_execution_at),
            data={"order_id": latest.id, "error": error},
            event=NotificationEvent.DCA_FAILED,
        )
        return ItemResult(triggered=True, failed=True, error=error)

    def _notify_completed(self, order: DCAOrder) -> None:
        self.logger.info("DCA order completed", owner=order.owner, order_id=order.id, total_executions=order.total_executions)
        self.notifier.notify(
            order.owner,
            messages.dca_completed(order.pair, order.total_executions),
            data={"order_id": order.id, "total_executions": order.total_executions},
            event=NotificationEvent.DCA_COMPLETED,
        )

"""Price alert engine."""

from typing import Any

from ..errors import ExchangeError
from ..exchange.base import RateProvider
from ..models.entities import Alert, EntityKind
from ..notify import messages
from ..notify.messages import NotificationEvent
from .base import CycleEngine, ItemResult, parse_direction, require_positive, require_text
from .triggers import crossed_strict


class AlertEngine(CycleEngine[Alert]):
    """
    Evaluates active price alerts each cycle.

    An alert fires when the rate is strictly beyond its target. Firing
    deactivates it before the owner is notified, so it fires at most once.
    """

    name = "alerts"
    kind = EntityKind.ALERT

    def __init__(self, repository, notifier, rate_provider: RateProvider, **kwargs):
        super().__init__(repository, notifier, **kwargs)
        self.rate_provider = rate_provider

    def decode(self, record: dict[str, Any]) -> Alert:
        return Alert.from_dict(record)

    def add_alert(self, owner: str, from_coin: str, to_coin: str, target_rate: float, direction) -> Alert:
        alert = Alert(
            owner=require_text(owner, "owner"),
            from_coin=require_text(from_coin, "from_coin").lower(),
            to_coin=require_text(to_coin, "to_coin").lower(),
            target_rate=require_positive(target_rate, "target_rate"),
            direction=parse_direction(direction),
            created_at=self.clock(),
        )
        self.save(alert)

        self.logger.info(
            "Alert created",
            owner=owner,
            alert_id=alert.id,
            pair=alert.pair,
            direction=alert.direction.value,
            target_rate=alert.target_rate,
        )
        return alert

    def list_active(self, owner: str) -> list[Alert]:
        return self.list_for_owner(owner)

    def list_alerts(self, owner: str) -> list[Alert]:
        """All alerts for the owner, fired ones included."""
        return self.list_for_owner(owner, active_only=False)

    def remove_alert(self, owner: str, alert_id: str) -> bool:
        with self._lock:
            alert = self.reload(alert_id, active_only=False)
            if alert is None or alert.owner != owner:
                return False
            self.repository.delete(self.kind, alert_id)

        self.logger.info("Alert removed", owner=owner, alert_id=alert_id)
        return True

    def process(self, alert: Alert) -> ItemResult:
        try:
            rate = self.rate_provider.fetch_rate(alert.from_coin, alert.to_coin)
        except ExchangeError as e:
            self.logger.warning("Rate unavailable for alert", alert_id=alert.id, pair=alert.pair, error=str(e))
            return ItemResult(failed=True, error=str(e))

        with self._lock:
            current = self.reload(alert.id)
            if current is None:
                return ItemResult(skipped=True)

            if not crossed_strict(current.direction, rate, current.target_rate):
                return ItemResult()

            current.mark_triggered(self.clock())
            self.save(current)

        self.logger.info(
            "Alert triggered",
            owner=current.owner,
            alert_id=current.id,
            pair=current.pair,
            rate=rate,
            target_rate=current.target_rate,
        )
        self.notifier.notify(
            current.owner,
            messages.alert_triggered(current.pair, current.direction.value, current.target_rate, rate),
            data={"alert_id": current.id, "pair": current.pair, "rate": rate},
            event=NotificationEvent.ALERT_TRIGGERED,
        )
        return ItemResult(triggered=True)

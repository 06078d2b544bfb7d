"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import pytest

from shiftflow.automation.alerts import AlertEngine
from shiftflow.automation.dca import DCAScheduler
from shiftflow.automation.limit_orders import LimitOrderEngine
from shiftflow.errors import RateUnavailableError
from shiftflow.exchange.base import ExchangeClient, RateProvider
from shiftflow.exchange.executor import QuoteExecutor
from shiftflow.models.exchange import Quote, ShiftOrder, ShiftStatusReport
from shiftflow.notify.dispatcher import Notifier
from shiftflow.notify.messages import NotificationEvent
from shiftflow.persistence.repository import InMemoryRepository
from shiftflow.scheduling.base import BaseTaskScheduler
from shiftflow.state.lifecycle import SwapLifecycleMachine
from shiftflow.state.session_store import ConversationStore
from shiftflow.utils.time import utc_now

START_TIME = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """Manually advanced UTC clock."""

    def __init__(self, now: datetime = START_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class ManualTaskScheduler(BaseTaskScheduler):
    """Deterministic scheduler driven by a FixedClock."""

    def __init__(self, clock: FixedClock):
        self.clock = clock
        self.jobs: dict[str, dict[str, Any]] = {}
        self.cancelled: list[str] = []
        self._counter = 0

    def _add(self, fn: Callable[[], None], delay: float, interval: Optional[float], name: str) -> str:
        self._counter += 1
        token = f"job-{self._counter}"
        self.jobs[token] = {
            "fn": fn,
            "run_at": self.clock.now + timedelta(seconds=delay),
            "interval": interval,
            "name": name,
        }
        return token

    def every(self, interval_seconds: float, fn: Callable[[], None], name: str = "") -> str:
        return self._add(fn, interval_seconds, interval_seconds, name)

    def after(self, delay_seconds: float, fn: Callable[[], None], name: str = "") -> str:
        return self._add(fn, delay_seconds, None, name)

    def cancel(self, token: str) -> bool:
        if token in self.jobs:
            del self.jobs[token]
            self.cancelled.append(token)
            return True
        return False

    def is_scheduled(self, token: str) -> bool:
        return token in self.jobs

    def jobs_named(self, prefix: str) -> list[str]:
        return [token for token, job in self.jobs.items() if job["name"].startswith(prefix)]

    def fire(self, token: str) -> None:
        """Run one job now, as if its trigger elapsed."""
        job = self.jobs[token]
        if job["interval"] is None:
            del self.jobs[token]
        job["fn"]()

    def advance(self, seconds: float) -> None:
        """Move time forward, running every job that falls due on the way."""
        target = self.clock.now + timedelta(seconds=seconds)
        while True:
            due = [(job["run_at"], token) for token, job in self.jobs.items() if job["run_at"] <= target]
            if not due:
                break
            run_at, token = min(due)
            self.clock.now = run_at
            job = self.jobs[token]
            if job["interval"] is None:
                del self.jobs[token]
            else:
                job["run_at"] = run_at + timedelta(seconds=job["interval"])
            job["fn"]()
        self.clock.now = target


class FakeExchange(ExchangeClient, RateProvider):
    """In-memory exchange with scriptable rates, statuses and failures."""

    def __init__(self, clock: Callable[[], datetime], quote_ttl_seconds: float = 900):
        self.clock = clock
        self.quote_ttl_seconds = quote_ttl_seconds
        self.rates: dict[tuple[str, str], float] = {}
        self.statuses: dict[str, list[str]] = {}

        self.rate_error: Optional[Exception] = None
        self.quote_error: Optional[Exception] = None
        self.create_error: Optional[Exception] = None
        self.status_error: Optional[Exception] = None
        self.cancel_error: Optional[Exception] = None

        self.rate_calls: list[tuple[str, str]] = []
        self.quote_calls: list[dict[str, Any]] = []
        self.create_calls: list[dict[str, Any]] = []
        self.status_calls: list[str] = []
        self.cancel_calls: list[str] = []
        self._counter = 0

    def set_rate(self, from_coin: str, to_coin: str, rate: float) -> None:
        self.rates[(from_coin, to_coin)] = rate

    def fetch_rate(self, from_coin: str, to_coin: str) -> float:
        self.rate_calls.append((from_coin, to_coin))
        if self.rate_error is not None:
            raise self.rate_error
        try:
            return self.rates[(from_coin, to_coin)]
        except KeyError:
            raise RateUnavailableError("no rate", from_coin=from_coin, to_coin=to_coin)

    def request_quote(self, from_coin, to_coin, amount, from_network=None, to_network=None) -> Quote:
        self.quote_calls.append({
            "from_coin": from_coin,
            "to_coin": to_coin,
            "amount": amount,
            "from_network": from_network,
            "to_network": to_network,
        })
        if self.quote_error is not None:
            raise self.quote_error
        self._counter += 1
        return Quote(
            id=f"quote-{self._counter}",
            from_coin=from_coin,
            to_coin=to_coin,
            deposit_amount=str(amount),
            settle_amount="100.0",
            rate="0.5",
            expires_at=self.clock() + timedelta(seconds=self.quote_ttl_seconds),
        )

    def create_order(self, quote_id, destination_address, refund_address=None) -> ShiftOrder:
        self.create_calls.append({
            "quote_id": quote_id,
            "destination_address": destination_address,
            "refund_address": refund_address,
        })
        if self.create_error is not None:
            raise self.create_error
        self._counter += 1
        return ShiftOrder(
            id=f"shift-{self._counter}",
            deposit_address="deposit-address-1",
            deposit_amount="0.01",
            deposit_coin="btc",
            status="waiting",
            created_at=self.clock(),
        )

    def poll_order_status(self, order_id: str) -> ShiftStatusReport:
        self.status_calls.append(order_id)
        if self.status_error is not None:
            raise self.status_error
        queue = self.statuses.get(order_id) or ["waiting"]
        status = queue.pop(0) if len(queue) > 1 else queue[0]
        return ShiftStatusReport(order_id=order_id, status=status)

    def cancel_order(self, order_id: str) -> None:
        self.cancel_calls.append(order_id)
        if self.cancel_error is not None:
            raise self.cancel_error


class RecordingNotifier(Notifier):
    """Collects notifications instead of delivering them."""

    def __init__(self):
        self.sent: list[dict[str, Any]] = []

    def notify(self, owner, message, data=None, event=NotificationEvent.INFO) -> None:
        self.sent.append({"owner": owner, "message": message, "data": data or {}, "event": event})

    def events(self, owner: Optional[str] = None) -> list[NotificationEvent]:
        return [n["event"] for n in self.sent if owner is None or n["owner"] == owner]


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def scheduler(clock) -> ManualTaskScheduler:
    return ManualTaskScheduler(clock)


@pytest.fixture
def exchange(clock) -> FakeExchange:
    return FakeExchange(clock)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def store(scheduler, clock) -> ConversationStore:
    return ConversationStore(scheduler, clock=clock)


@pytest.fixture
def machine(store, exchange, scheduler, notifier, clock) -> SwapLifecycleMachine:
    return SwapLifecycleMachine(store, exchange, scheduler, notifier, clock=clock)


@pytest.fixture
def executor(exchange) -> QuoteExecutor:
    return QuoteExecutor(exchange)


@pytest.fixture
def alert_engine(repository, notifier, exchange, clock) -> AlertEngine:
    return AlertEngine(repository, notifier, exchange, max_workers=1, clock=clock)


@pytest.fixture
def dca_scheduler(repository, notifier, executor, clock) -> DCAScheduler:
    return DCAScheduler(repository, notifier, executor, max_workers=1, clock=clock)


@pytest.fixture
def limit_engine(repository, notifier, exchange, executor, clock) -> LimitOrderEngine:
    return LimitOrderEngine(repository, notifier, exchange, executor, max_workers=1, clock=clock)


@pytest.fixture
def live_exchange() -> FakeExchange:
    """Exchange stamped with wall-clock time, for components that do not take a clock."""
    return FakeExchange(utc_now)

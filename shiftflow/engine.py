"""
Automation service coordinator.

Wires configuration, scheduler, repository, notifier and exchange client
into the session lifecycle and the three automation engines, and registers
one periodic job per engine.
"""

from typing import Any, Optional

import structlog

from .automation.alerts import AlertEngine
from .automation.dca import DCAScheduler
from .automation.limit_orders import LimitOrderEngine
from .config.defaults import DefaultConfig, get_default_config
from .config.loader import ConfigLoader
from .config.notifications import NotificationConfig
from .config.validation import ConfigValidator
from .errors import InvalidRequestError
from .exchange.base import ExchangeClient, RateProvider
from .exchange.executor import QuoteExecutor
from .exchange.rate_cache import CachedRateProvider
from .exchange.sideshift import SideShiftClient
from .logging.config import configure_logging
from .notify.dispatcher import Notifier, SinkNotifier
from .persistence.repository import BaseRepository, InMemoryRepository
from .persistence.sqlite_store import SqliteRepository
from .scheduling.background import BackgroundTaskScheduler
from .scheduling.base import BaseTaskScheduler
from .state.lifecycle import SwapLifecycleMachine
from .state.session_store import ConversationStore

logger = structlog.get_logger(__name__)


def build_repository(config: DefaultConfig) -> BaseRepository:
    if config.persistence.backend == "sqlite":
        return SqliteRepository(config.persistence.db_path)
    return InMemoryRepository()


class AutomationService:
    """
    Process-scoped context owning every long-lived component.

    Nothing runs until start(); shutdown() stops the periodic jobs and drops
    all session timers.
    """

    def __init__(
        self,
        config: Optional[DefaultConfig] = None,
        scheduler: Optional[BaseTaskScheduler] = None,
        repository: Optional[BaseRepository] = None,
        notifier: Optional[Notifier] = None,
        exchange: Optional[ExchangeClient] = None,
        rate_provider: Optional[RateProvider] = None,
        notification_config: Optional[NotificationConfig] = None,
    ):
        self.config = config or get_default_config()
        self.logger = logger

        self.scheduler = scheduler or BackgroundTaskScheduler(
            max_workers=self.config.workers.max_workers,
            misfire_grace_seconds=self.config.workers.misfire_grace_seconds,
        )
        self.repository = repository or build_repository(self.config)
        self.notifier = notifier or SinkNotifier(notification_config)

        client = None
        if exchange is None or rate_provider is None:
            client = SideShiftClient(self.config.exchange)
        self.exchange = exchange or client

        base_rates = rate_provider or client
        if self.config.rate_cache.enabled:
            self.rate_provider: RateProvider = CachedRateProvider(base_rates, self.config.rate_cache.ttl_seconds)
        else:
            self.rate_provider = base_rates

        self.executor = QuoteExecutor(self.exchange)
        max_workers = self.config.workers.max_workers

        self.sessions = ConversationStore(self.scheduler, repository=self.repository)
        self.lifecycle = SwapLifecycleMachine(
            self.sessions,
            self.exchange,
            self.scheduler,
            self.notifier,
            polling=self.config.polling,
            cancellation=self.config.cancellation,
        )
        self.alerts = AlertEngine(self.repository, self.notifier, self.rate_provider, max_workers=max_workers)
        self.dca = DCAScheduler(self.repository, self.notifier, self.executor, max_workers=max_workers)
        self.limit_orders = LimitOrderEngine(
            self.repository, self.notifier, self.rate_provider, self.executor, max_workers=max_workers
        )

        self._job_tokens: list[str] = []
        self._running = False

    @classmethod
    def create(
        cls,
        config_dir: Optional[str] = None,
        overrides: Optional[dict[str, Any]] = None,
        setup_logging: bool = True,
        **components: Any,
    ) -> "AutomationService":
        """Load and validate configuration, then build the service."""
        loader = ConfigLoader.create(config_dir)
        merged = loader.merge_config(overrides)

        errors = ConfigValidator.validate_config(merged)
        if errors:
            details = "; ".join(f"{e.field}: {e.message}" for e in errors)
            raise InvalidRequestError(f"Invalid configuration: {details}", field=errors[0].field)

        config = loader.load(overrides)
        if setup_logging:
            configure_logging(
                level=config.logging.level,
                format_json=config.logging.format_json,
                include_caller=config.logging.include_caller,
            )

        components.setdefault("notification_config", loader.load_notification_config())
        return cls(config=config, **components)

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Register engine ticks and start the scheduler."""
        if self._running:
            self.logger.warning("Automation service already running")
            return

        self._job_tokens = [
            self.scheduler.every(self.config.alerts.interval_seconds, self.alerts.run_cycle, name="alerts-cycle"),
            self.scheduler.every(self.config.dca.interval_seconds, self.dca.run_cycle, name="dca-cycle"),
            self.scheduler.every(
                self.config.limit_orders.interval_seconds, self.limit_orders.run_cycle, name="limit-orders-cycle"
            ),
        ]
        self.scheduler.start()
        self._running = True

        self.logger.info(
            "Automation service started",
            alerts_interval=self.config.alerts.interval_seconds,
            dca_interval=self.config.dca.interval_seconds,
            limit_orders_interval=self.config.limit_orders.interval_seconds,
        )

    def shutdown(self, wait: bool = True) -> None:
        """Cancel engine ticks and session timers, then stop the scheduler."""
        if not self._running:
            return

        for token in self._job_tokens:
            self.scheduler.cancel(token)
        self._job_tokens = []

        dropped = self.sessions.clear_all()
        self.scheduler.shutdown(wait=wait)
        self.repository.close()
        self._running = False

        self.logger.info("Automation service stopped", sessions_dropped=dropped)

    def get_runtime_stats(self) -> dict[str, Any]:
        stats: dict[str, Any] = {
            "running": self._running,
            "active_swaps": self.sessions.active_swap_count(),
        }
        if isinstance(self.rate_provider, CachedRateProvider):
            stats["rate_cache"] = self.rate_provider.get_stats()
        return stats

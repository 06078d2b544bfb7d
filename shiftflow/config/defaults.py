"""Default configuration parameters for the swap lifecycle and automation engines."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class PollingParams:
    """Manual swap status polling."""
    status_interval_seconds: float = 30.0           # Per-session status poll cadence


@dataclass(frozen=True)
class AlertParams:
    """Price alert engine."""
    interval_seconds: float = 30.0                   # Alert cycle cadence


@dataclass(frozen=True)
class DCAParams:
    """DCA scheduler."""
    interval_seconds: float = 60.0                   # How often due orders are looked for


@dataclass(frozen=True)
class LimitOrderParams:
    """Limit order engine."""
    interval_seconds: float = 30.0                   # Limit order cycle cadence


@dataclass(frozen=True)
class CancellationParams:
    """Manual swap cancellation."""
    min_order_age_seconds: float = 300.0             # Exchange refuses cancels before this age


@dataclass(frozen=True)
class WorkerParams:
    """Per-cycle fan-out against the exchange."""
    max_workers: int = 4                             # 1 evaluates items inline
    misfire_grace_seconds: int = 30                  # Late periodic runs still fire within this window


@dataclass(frozen=True)
class ExchangeParams:
    """Exchange API client."""
    base_url: str = "https://sideshift.ai/api/v2"
    timeout_seconds: int = 15
    secret: Optional[str] = None
    affiliate_id: Optional[str] = None


@dataclass(frozen=True)
class RateCacheParams:
    """Pair rate cache."""
    enabled: bool = True
    ttl_seconds: float = 30.0


@dataclass(frozen=True)
class PersistenceParams:
    """Entity repository backend."""
    backend: str = "memory"                          # memory, sqlite
    db_path: str = "shiftflow.db"


@dataclass(frozen=True)
class LoggingParams:
    """structlog output."""
    level: str = "INFO"
    format_json: bool = False
    include_caller: bool = False


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    polling: PollingParams = field(default_factory=PollingParams)
    alerts: AlertParams = field(default_factory=AlertParams)
    dca: DCAParams = field(default_factory=DCAParams)
    limit_orders: LimitOrderParams = field(default_factory=LimitOrderParams)
    cancellation: CancellationParams = field(default_factory=CancellationParams)
    workers: WorkerParams = field(default_factory=WorkerParams)
    exchange: ExchangeParams = field(default_factory=ExchangeParams)
    rate_cache: RateCacheParams = field(default_factory=RateCacheParams)
    persistence: PersistenceParams = field(default_factory=PersistenceParams)
    logging: LoggingParams = field(default_factory=LoggingParams)


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        polling=PollingParams(),
        alerts=AlertParams(),
        dca=DCAParams(),
        limit_orders=LimitOrderParams(),
        cancellation=CancellationParams(),
        workers=WorkerParams(),
        exchange=ExchangeParams(),
        rate_cache=RateCacheParams(),
        persistence=PersistenceParams(),
        logging=LoggingParams(),
    )

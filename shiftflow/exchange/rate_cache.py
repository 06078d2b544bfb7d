"""TTL cache over a rate provider."""

import threading
import time
from typing import Callable, Optional

import structlog

from .base import RateProvider

logger = structlog.get_logger(__name__)

DEFAULT_PAIR_RATE_TTL = 30.0


class CachedRateProvider(RateProvider):
    """
    Serves repeated pair lookups from memory within the TTL.

    Many alerts and limit orders watch the same pair, so one cycle usually
    needs a single fetch per pair. Failed fetches are never cached.
    """

    def __init__(
        self,
        provider: RateProvider,
        ttl_seconds: float = DEFAULT_PAIR_RATE_TTL,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.provider = provider
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._entries: dict[tuple[str, str], tuple[float, float]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self.logger = logger

    def fetch_rate(self, from_coin: str, to_coin: str) -> float:
        key = (from_coin.lower(), to_coin.lower())
        now = self._clock()

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                rate, expires_at = entry
                if now < expires_at:
                    self._hits += 1
                    return rate
                del self._entries[key]
            self._misses += 1

        rate = self.provider.fetch_rate(from_coin, to_coin)

        with self._lock:
            self._entries[key] = (rate, self._clock() + self.ttl_seconds)

        self.logger.debug("Rate cached", pair=f"{key[0]}/{key[1]}", rate=rate, ttl_seconds=self.ttl_seconds)
        return rate

    def invalidate(self, from_coin: Optional[str] = None, to_coin: Optional[str] = None) -> None:
        """Drop one pair, or everything when no pair is given."""
        with self._lock:
            if from_coin is None or to_coin is None:
                self._entries.clear()
            else:
                self._entries.pop((from_coin.lower(), to_coin.lower()), None)

    def get_stats(self) -> dict[str, int]:
        with self._lock:
            return {"entries": len(self._entries), "hits": self._hits, "misses": self._misses}

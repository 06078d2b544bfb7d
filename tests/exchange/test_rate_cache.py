"""Tests for the pair rate cache."""

from unittest.mock import Mock

import pytest

from shiftflow.errors import RateUnavailableError
from shiftflow.exchange.rate_cache import CachedRateProvider


class ManualClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def provider():
    mock = Mock()
    mock.fetch_rate.return_value = 42000.0
    return mock


class TestCachedRateProvider:
    """Test CachedRateProvider."""

    def test_hit_within_ttl(self, provider, clock):
        """Test that a second lookup inside the TTL is served from cache."""
        cache = CachedRateProvider(provider, ttl_seconds=30, clock=clock)

        assert cache.fetch_rate("btc", "usdt") == 42000.0
        clock.now += 29
        assert cache.fetch_rate("BTC", "USDT") == 42000.0

        assert provider.fetch_rate.call_count == 1
        assert cache.get_stats() == {"entries": 1, "hits": 1, "misses": 1}

    def test_refetch_after_ttl(self, provider, clock):
        """Test that an expired entry is fetched again."""
        cache = CachedRateProvider(provider, ttl_seconds=30, clock=clock)
        cache.fetch_rate("btc", "usdt")

        clock.now += 30
        provider.fetch_rate.return_value = 43000.0

        assert cache.fetch_rate("btc", "usdt") == 43000.0
        assert provider.fetch_rate.call_count == 2

    def test_pairs_are_cached_separately(self, provider, clock):
        """Test that each direction of a pair has its own entry."""
        cache = CachedRateProvider(provider, clock=clock)
        cache.fetch_rate("btc", "usdt")
        cache.fetch_rate("usdt", "btc")

        assert provider.fetch_rate.call_count == 2

    def test_failures_are_not_cached(self, provider, clock):
        """Test that a failed fetch is retried on the next lookup."""
        provider.fetch_rate.side_effect = [RateUnavailableError("down"), 41000.0]
        cache = CachedRateProvider(provider, clock=clock)

        with pytest.raises(RateUnavailableError):
            cache.fetch_rate("btc", "usdt")
        assert cache.fetch_rate("btc", "usdt") == 41000.0

    def test_invalidate(self, provider, clock):
        """Test dropping one pair and everything."""
        cache = CachedRateProvider(provider, clock=clock)
        cache.fetch_rate("btc", "usdt")
        cache.fetch_rate("eth", "usdt")

        cache.invalidate("BTC", "USDT")
        assert cache.get_stats()["entries"] == 1

        cache.invalidate()
        assert cache.get_stats()["entries"] == 0

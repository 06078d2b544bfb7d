"""
Exchange rate provider, SideShift client and swap execution.
"""

from .base import ExchangeClient, RateProvider
from .executor import QuoteExecutor
from .rate_cache import CachedRateProvider
from .sideshift import SideShiftClient

__all__ = [
    "RateProvider",
    "ExchangeClient",
    "QuoteExecutor",
    "CachedRateProvider",
    "SideShiftClient",
]

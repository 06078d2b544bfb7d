"""
Automation engines: price alerts, DCA orders and limit orders.
"""

from .alerts import AlertEngine
from .base import CycleEngine, CycleReport, ItemResult
from .dca import DCAScheduler
from .limit_orders import LimitOrderEngine

__all__ = [
    "AlertEngine",
    "CycleEngine",
    "CycleReport",
    "ItemResult",
    "DCAScheduler",
    "LimitOrderEngine",
]

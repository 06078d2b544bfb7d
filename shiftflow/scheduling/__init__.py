"""
Timer and periodic job scheduling.
"""

from .background import BackgroundTaskScheduler
from .base import BaseTaskScheduler

__all__ = ["BaseTaskScheduler", "BackgroundTaskScheduler"]

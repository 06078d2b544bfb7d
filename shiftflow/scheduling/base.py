"""Task scheduler interface."""

from abc import ABC, abstractmethod
from typing import Callable


class BaseTaskScheduler(ABC):
    """
    Single scheduling service for periodic engine ticks and session timers.

    Every scheduled callable is identified by an opaque string token. Tokens
    are the only timer handle the rest of the system keeps, so sessions stay
    plain data and a timer can be cancelled from any thread.
    """

    @abstractmethod
    def every(self, interval_seconds: float, fn: Callable[[], None], name: str = "") -> str:
        """Run fn every interval_seconds; returns the cancellation token."""

    @abstractmethod
    def after(self, delay_seconds: float, fn: Callable[[], None], name: str = "") -> str:
        """Run fn once after delay_seconds; returns the cancellation token."""

    @abstractmethod
    def cancel(self, token: str) -> bool:
        """Cancel a scheduled callable. Returns False if it already ran or is unknown."""

    @abstractmethod
    def is_scheduled(self, token: str) -> bool:
        """Whether the token still refers to a pending job."""

    def start(self) -> None:
        """Start dispatching jobs."""

    def shutdown(self, wait: bool = True) -> None:
        """Stop dispatching jobs."""

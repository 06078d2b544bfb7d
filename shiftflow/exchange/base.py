"""Interfaces for the rate provider and the exchange."""

from abc import ABC, abstractmethod
from typing import Optional

from ..models.exchange import Quote, ShiftOrder, ShiftStatusReport


class RateProvider(ABC):
    """Source of current exchange rates."""

    @abstractmethod
    def fetch_rate(self, from_coin: str, to_coin: str) -> float:
        """
        Fetch the current rate for one unit of from_coin in to_coin.

        Raises:
            RateUnavailableError: rate could not be fetched
            RateLimitedError: provider asked the caller to back off
        """


class ExchangeClient(ABC):
    """Quote and shift lifecycle operations against the exchange."""

    @abstractmethod
    def request_quote(
        self,
        from_coin: str,
        to_coin: str,
        amount: str,
        from_network: Optional[str] = None,
        to_network: Optional[str] = None,
    ) -> Quote:
        """Request a fixed-rate quote for depositing amount of from_coin."""

    @abstractmethod
    def create_order(
        self,
        quote_id: str,
        destination_address: str,
        refund_address: Optional[str] = None,
    ) -> ShiftOrder:
        """Create a shift against a quote."""

    @abstractmethod
    def poll_order_status(self, order_id: str) -> ShiftStatusReport:
        """Fetch the current status of a shift."""

    @abstractmethod
    def cancel_order(self, order_id: str) -> None:
        """Cancel a shift that has not received funds."""

"""Quote-then-create execution used by DCA and limit orders."""

import structlog

from ..errors import OrderCreationError
from ..models.exchange import ShiftOrder, SwapRequest
from .base import ExchangeClient

logger = structlog.get_logger(__name__)


class QuoteExecutor:
    """Requests a quote and creates a shift against it in one step."""

    def __init__(self, exchange: ExchangeClient):
        self.exchange = exchange
        self.logger = logger

    def execute(self, request: SwapRequest) -> ShiftOrder:
        """
        Quote and create a shift for the request.

        Raises:
            ExchangeError: quote or shift creation failed; nothing is
                retried here, the caller applies its own policy
        """
        quote = self.exchange.request_quote(
            request.from_coin,
            request.to_coin,
            request.amount,
            from_network=request.from_network,
            to_network=request.to_network,
        )

        if not quote.id:
            raise OrderCreationError("Exchange returned a quote without an id")

        order = self.exchange.create_order(
            quote.id,
            request.destination_address,
            refund_address=request.refund_address,
        )

        self.logger.info(
            "Swap executed",
            shift_id=order.id,
            quote_id=quote.id,
            from_coin=request.from_coin,
            to_coin=request.to_coin,
            amount=request.amount,
        )
        return order

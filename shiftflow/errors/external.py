"""
External failure classifications for the exchange and rate provider.

Transient failures (rate fetches, status polls, rate limiting, 5xx responses)
are logged and retried on the next tick. Permanent failures (bad request,
authentication) surface to the owner as a human-readable notification.
"""

from typing import Optional, Dict, Any


class ExchangeError(Exception):
    """Base class for failures reported by, or while talking to, the exchange."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 retryable: bool = False, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable
        self.context = context or {}
        self.recoverable = retryable


class RateUnavailableError(ExchangeError):
    """Current rate for a pair could not be fetched."""

    def __init__(self, message: str, from_coin: Optional[str] = None,
                 to_coin: Optional[str] = None, **kwargs):
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)
        self.from_coin = from_coin
        self.to_coin = to_coin


class QuoteError(ExchangeError):
    """Quote request was rejected or failed."""


class OrderCreationError(ExchangeError):
    """Shift creation against a quote failed."""

    def __init__(self, message: str, quote_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.quote_id = quote_id


class OrderStatusError(ExchangeError):
    """Status lookup for an existing shift failed."""

    def __init__(self, message: str, order_id: Optional[str] = None, **kwargs):
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)
        self.order_id = order_id


class OrderCancellationError(ExchangeError):
    """Cancelling an existing shift failed."""

    def __init__(self, message: str, order_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.order_id = order_id


class ExchangeAuthenticationError(ExchangeError):
    """Exchange rejected the configured credentials."""


class RateLimitedError(ExchangeError):
    """Exchange asked the client to back off."""

    def __init__(self, message: str, retry_after: Optional[float] = None, **kwargs):
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)
        self.retry_after = retry_after

"""
Error classification system for the swap lifecycle and automation engines.

Errors fall into four groups: transient external failures (retried next
tick), execution failures (recorded on the entity), caller errors (raised
synchronously) and internal system failures (logged, entity skipped).
"""

from .external import (
    ExchangeError,
    RateUnavailableError,
    QuoteError,
    OrderCreationError,
    OrderStatusError,
    OrderCancellationError,
    ExchangeAuthenticationError,
    RateLimitedError,
)
from .caller import (
    CallerError,
    InvalidRequestError,
    EntityNotFoundError,
    SessionNotFoundError,
    StateTransitionError,
)
from .system_failures import (
    SystemFailureError,
    PersistenceError,
    MalformedEntityError,
)
from .recovery import (
    UnrecoverableError,
)

__all__ = [
    # External failures
    "ExchangeError",
    "RateUnavailableError",
    "QuoteError",
    "OrderCreationError",
    "OrderStatusError",
    "OrderCancellationError",
    "ExchangeAuthenticationError",
    "RateLimitedError",
    # Caller errors
    "CallerError",
    "InvalidRequestError",
    "EntityNotFoundError",
    "SessionNotFoundError",
    "StateTransitionError",
    # System failures
    "SystemFailureError",
    "PersistenceError",
    "MalformedEntityError",
    # Recovery categories
    "UnrecoverableError",
]

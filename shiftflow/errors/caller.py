"""
Caller error classifications.

Raised synchronously to whoever invoked an operation with bad input, an
unknown entity or an out-of-order session step. These are never retried.
"""

from typing import Optional, Dict, Any

from .recovery import UnrecoverableError


class CallerError(UnrecoverableError):
    """Base class for errors caused by the caller's request."""


class InvalidRequestError(CallerError):
    """Request arguments failed validation."""

    def __init__(self, message: str, field: Optional[str] = None,
                 value: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value


class EntityNotFoundError(CallerError):
    """No entity with this id exists for this owner."""

    def __init__(self, message: str, kind: Optional[str] = None,
                 entity_id: Optional[str] = None, owner: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.kind = kind
        self.entity_id = entity_id
        self.owner = owner


class SessionNotFoundError(CallerError):
    """Identity has no swap session in progress."""

    def __init__(self, message: str, identity: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.identity = identity


class StateTransitionError(CallerError):
    """Requested step is not allowed from the session's current state."""

    def __init__(self, message: str, current_state: Optional[str] = None,
                 attempted_transition: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context=context)
        self.current_state = current_state
        self.attempted_transition = attempted_transition

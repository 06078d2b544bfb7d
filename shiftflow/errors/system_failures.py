"""
System failure error classifications.

These exceptions represent internal failures: storage, notification
delivery, or stored records that can no longer be decoded.
"""

from typing import Optional, Dict, Any


class SystemFailureError(Exception):
    """Base class for internal system failures."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class PersistenceError(SystemFailureError):
    """Database or file system persistence failures."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.target = target


class MalformedEntityError(SystemFailureError):
    """A stored entity record cannot be decoded into its model."""

    def __init__(self, message: str, kind: Optional[str] = None,
                 entity_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.kind = kind
        self.entity_id = entity_id

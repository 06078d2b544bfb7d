"""
Recovery strategy classifications for error handling.

Transient exchange failures carry their own retryable flag; everything
raised back to a caller derives from UnrecoverableError.
"""

from typing import Optional, Dict, Any


class UnrecoverableError(Exception):
    """Mixin for errors that require the caller or owner to act."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None, **kwargs):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False

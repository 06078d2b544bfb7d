"""
Manual swap sessions and their lifecycle.
"""

from .lifecycle import SwapLifecycleMachine
from .session_store import ConversationStore

__all__ = ["ConversationStore", "SwapLifecycleMachine"]

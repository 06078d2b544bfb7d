"""
Owner notifications: sinks, dispatch and message texts.
"""

from .base import BaseNotificationSink, DeliveryResult, DeliveryStatus
from .dispatcher import Notifier, SinkNotifier, create_sink
from .messages import NotificationEvent

__all__ = [
    "BaseNotificationSink",
    "DeliveryResult",
    "DeliveryStatus",
    "Notifier",
    "SinkNotifier",
    "create_sink",
    "NotificationEvent",
]

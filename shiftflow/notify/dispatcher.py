"""Fans owner notifications out to the configured sinks."""

from abc import ABC, abstractmethod
from typing import Any, Optional

import structlog

from ..config.notifications import (
    NotificationConfig,
    NotificationDestination,
    NotificationMethod,
    get_default_notification_config,
)
from ..utils.time import format_timestamp, utc_now
from .base import BaseNotificationSink, DeliveryStatus
from .file_sink import FileNotificationSink
from .messages import NotificationEvent
from .stdout_sink import StdoutNotificationSink
from .webhook_sink import WebhookNotificationSink

logger = structlog.get_logger(__name__)


class Notifier(ABC):
    """Fire-and-forget channel back to an owner."""

    @abstractmethod
    def notify(
        self,
        owner: str,
        message: str,
        data: Optional[dict[str, Any]] = None,
        event: NotificationEvent = NotificationEvent.INFO,
    ) -> None:
        """Send a message to the owner. Must never raise."""


def create_sink(destination: NotificationDestination) -> BaseNotificationSink:
    """Instantiate the sink for a configured destination."""
    if destination.method == NotificationMethod.WEBHOOK:
        return WebhookNotificationSink(destination.name, destination.config)
    if destination.method == NotificationMethod.FILE_OUTPUT:
        return FileNotificationSink(destination.name, destination.config)
    return StdoutNotificationSink(destination.name, destination.config)


class SinkNotifier(Notifier):
    """Delivers each notification to every enabled sink whose filter accepts it."""

    def __init__(self, config: Optional[NotificationConfig] = None):
        self.config = config or get_default_notification_config()
        self.logger = logger
        self._routes: list[tuple[NotificationDestination, BaseNotificationSink]] = []

        for destination in self.config.destinations:
            if not destination.enabled:
                continue
            self._routes.append((destination, create_sink(destination)))

    @property
    def sinks(self) -> list[BaseNotificationSink]:
        return [sink for _, sink in self._routes]

    def notify(
        self,
        owner: str,
        message: str,
        data: Optional[dict[str, Any]] = None,
        event: NotificationEvent = NotificationEvent.INFO,
    ) -> None:
        if not self.config.enabled:
            return

        notification = {
            "event": event.value,
            "owner": owner,
            "message": message,
            "data": data or {},
            "timestamp": format_timestamp(utc_now()),
        }

        for destination, sink in self._routes:
            if destination.events_filter is not None and event.value not in destination.events_filter:
                continue

            try:
                result = sink.deliver_with_retry(
                    notification,
                    max_retries=self.config.retry_attempts,
                    retry_delay=self.config.retry_delay_seconds,
                )
            except Exception as e:
                self.logger.error("Notification sink raised", sink=sink.name, owner=owner, error=str(e))
                continue

            if result.status != DeliveryStatus.SUCCESS:
                self.logger.error(
                    "Notification delivery failed",
                    sink=sink.name,
                    owner=owner,
                    notification_event=event.value,
                    status=result.status.value,
                    detail=result.message,
                )

    def get_stats(self) -> list[dict[str, Any]]:
        return [sink.get_stats() for sink in self.sinks]

"""Standard output notification sink."""

import json
import sys
from typing import Any

from ..config.notifications import StdoutSinkConfig
from ..utils.time import utc_now
from .base import BaseNotificationSink, DeliveryResult, DeliveryStatus


class StdoutNotificationSink(BaseNotificationSink):
    """Prints notifications to stdout."""

    def __init__(self, name: str, config: StdoutSinkConfig):
        super().__init__(name, config)
        self.config: StdoutSinkConfig = config

    def deliver(self, notification: dict[str, Any]) -> DeliveryResult:
        output = self._format(notification)
        print(output, file=sys.stdout, flush=True)

        self.logger.debug("Notification printed", owner=notification.get("owner"))
        return DeliveryResult(status=DeliveryStatus.SUCCESS, message="Printed to stdout")

    def _format(self, notification: dict[str, Any]) -> str:
        if self.config.format == "pretty":
            prefix = f"[{utc_now().isoformat()}] " if self.config.include_timestamp else ""
            return f"{prefix}{notification['owner']} <- {notification['message']}"

        if self.config.include_timestamp:
            notification = dict(notification, stdout_timestamp=utc_now().isoformat())
        return json.dumps(notification, default=str)

    def health_check(self) -> bool:
        try:
            return sys.stdout.writable()
        except (OSError, ValueError):
            return False

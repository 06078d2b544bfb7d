"""HTTP webhook notification sink."""

import json
import socket
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from ..config.notifications import WebhookSinkConfig
from .base import BaseNotificationSink, DeliveryResult, DeliveryStatus, SinkPermanentError, SinkRetryableError


class WebhookNotificationSink(BaseNotificationSink):
    """POSTs each notification as JSON to a webhook URL."""

    def __init__(self, name: str, config: WebhookSinkConfig):
        super().__init__(name, config)
        self.config: WebhookSinkConfig = config

        parsed = urlparse(config.url)
        if not parsed.scheme or not parsed.netloc:
            raise SinkPermanentError(f"Invalid URL: {config.url}")

    def deliver(self, notification: dict[str, Any]) -> DeliveryResult:
        data = json.dumps(notification, default=str).encode('utf-8')
        headers = {
            'Content-Type': 'application/json',
            'Content-Length': str(len(data)),
            'User-Agent': 'shiftflow/0.1'
        }
        if self.config.headers:
            headers.update(self.config.headers)

        req = Request(self.config.url, data=data, headers=headers, method=self.config.method)

        try:
            with urlopen(req, timeout=self.config.timeout_seconds) as response:
                response_code = response.getcode()

        except HTTPError as e:
            self.logger.warning(
                "Webhook HTTP error",
                owner=notification.get("owner"),
                error_code=e.code,
                error_reason=e.reason
            )
            error_msg = f"HTTP {e.code}: {e.reason}"
            if e.code >= 500 or e.code == 429:
                raise SinkRetryableError(error_msg) from e
            raise SinkPermanentError(error_msg) from e

        except (OSError, URLError, socket.timeout) as e:
            self.logger.warning("Webhook network error", owner=notification.get("owner"), error=str(e))
            raise SinkRetryableError(f"Network error: {str(e)}") from e

        self.logger.debug("Webhook delivered", owner=notification.get("owner"), response_code=response_code)
        return DeliveryResult(status=DeliveryStatus.SUCCESS, message=f"HTTP {response_code}")

    def health_check(self) -> bool:
        try:
            parsed = urlparse(self.config.url)
            req = Request(f"{parsed.scheme}://{parsed.netloc}", method='HEAD')
            with urlopen(req, timeout=5) as response:
                return 200 <= response.getcode() < 400
        except (OSError, URLError, socket.timeout) as e:
            self.logger.warning("Health check failed", error=str(e))
            return False

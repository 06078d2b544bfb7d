"""Base classes for owner notification sinks."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import structlog


class DeliveryStatus(Enum):
    """Outcome of handing one notification to a sink."""
    SUCCESS = "success"
    FAILED = "failed"
    DEAD_LETTER = "dead_letter"


@dataclass
class DeliveryResult:
    """What happened to one notification at one sink."""
    status: DeliveryStatus
    message: Optional[str] = None
    attempt_count: int = 1
    delivery_time_ms: Optional[int] = None
    error: Optional[Exception] = None


class SinkDeliveryError(Exception):
    """A sink could not accept a notification."""


class SinkRetryableError(SinkDeliveryError):
    """Sink is temporarily unavailable (busy file, 5xx, timeout)."""


class SinkPermanentError(SinkDeliveryError):
    """Sink refused the notification outright; retrying will not help."""


class BaseNotificationSink(ABC):
    """
    One destination for owner notifications.

    Subclasses implement a single delivery attempt; the shared retry policy
    lives in deliver_with_retry so every sink backs off the same way.
    """

    def __init__(self, name: str, config: Any):
        self.name = name
        self.config = config
        self.logger = structlog.get_logger(f"notify.{name}").bind(sink=name)
        self._delivery_count = 0
        self._error_count = 0

    @abstractmethod
    def deliver(self, notification: dict[str, Any]) -> DeliveryResult:
        """
        Make one delivery attempt.

        Raises:
            SinkRetryableError: transient failure, worth another attempt
            SinkPermanentError: failure that will not go away on retry
        """

    @abstractmethod
    def health_check(self) -> bool:
        """Whether the sink can currently accept notifications."""

    def deliver_with_retry(
        self,
        notification: dict[str, Any],
        max_retries: int = 2,
        retry_delay: float = 0.5,
    ) -> DeliveryResult:
        """
        Deliver with up to max_retries extra attempts for transient failures.

        Never raises; the outcome is reported in the returned DeliveryResult.
        Unknown exceptions from a sink count as transient.
        """
        last_error: Optional[Exception] = None
        attempts = max_retries + 1

        for attempt in range(1, attempts + 1):
            started = time.monotonic()
            try:
                result = self.deliver(notification)
            except SinkPermanentError as e:
                self._error_count += 1
                self.logger.error("Notification rejected by sink", owner=notification.get("owner"), error=str(e))
                return DeliveryResult(
                    status=DeliveryStatus.FAILED,
                    message=f"Permanent error: {e}",
                    attempt_count=attempt,
                    error=e,
                )
            except Exception as e:
                last_error = e
            else:
                if result.status == DeliveryStatus.SUCCESS:
                    result.delivery_time_ms = int((time.monotonic() - started) * 1000)
                    result.attempt_count = attempt
                    self._delivery_count += 1
                    return result
                last_error = result.error

            if attempt < attempts:
                self.logger.warning(
                    "Notification delivery failed, retrying",
                    attempt=attempt,
                    retry_delay=retry_delay,
                    error=str(last_error),
                )
                time.sleep(retry_delay)

        self._error_count += 1
        return DeliveryResult(
            status=DeliveryStatus.DEAD_LETTER,
            message=f"Max retries exceeded: {last_error}",
            attempt_count=attempts,
            error=last_error,
        )

    def get_stats(self) -> dict[str, Any]:
        total = self._delivery_count + self._error_count
        return {
            "name": self.name,
            "delivery_count": self._delivery_count,
            "error_count": self._error_count,
            "success_rate": self._delivery_count / total if total else 0.0,
        }

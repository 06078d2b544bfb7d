"""JSONL file notification sink."""

import fcntl
import json
from pathlib import Path
from typing import Any

from ..config.notifications import FileSinkConfig
from .base import BaseNotificationSink, DeliveryResult, DeliveryStatus, SinkPermanentError, SinkRetryableError


class FileNotificationSink(BaseNotificationSink):
    """Appends notifications to a JSONL file, one object per line."""

    def __init__(self, name: str, config: FileSinkConfig):
        super().__init__(name, config)
        self.config: FileSinkConfig = config
        self.output_path = Path(config.output_path)

        if config.create_dirs:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)

    def deliver(self, notification: dict[str, Any]) -> DeliveryResult:
        try:
            line = json.dumps(notification, default=str)
        except (TypeError, ValueError) as e:
            raise SinkPermanentError(f"JSON encoding error: {str(e)}") from e

        try:
            with open(self.output_path, 'a') as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                f.write(line)
                f.write('\n')
        except OSError as e:
            self.logger.warning(
                "Notification file error",
                output_path=str(self.output_path),
                error=str(e)
            )
            raise SinkRetryableError(f"File system error: {str(e)}") from e

        self.logger.debug(
            "Notification written to file",
            owner=notification.get("owner"),
            output_path=str(self.output_path)
        )
        return DeliveryResult(status=DeliveryStatus.SUCCESS, message=f"Written to {self.output_path}")

    def health_check(self) -> bool:
        try:
            test_file = self.output_path.parent / ".health_check_test"
            test_file.write_text("test")
            test_file.unlink()
            return True
        except OSError as e:
            self.logger.warning("Health check failed", error=str(e))
            return False

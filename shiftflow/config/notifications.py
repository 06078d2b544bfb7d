"""Configuration for owner notification sinks."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class NotificationMethod(Enum):
    """Supported notification sinks."""
    WEBHOOK = "webhook"
    FILE_OUTPUT = "file_output"
    STDOUT = "stdout"


@dataclass(frozen=True)
class WebhookSinkConfig:
    """Configuration for HTTP webhook notifications."""
    url: str
    method: str = "POST"
    headers: Optional[dict[str, str]] = None
    timeout_seconds: int = 10


@dataclass(frozen=True)
class FileSinkConfig:
    """Configuration for JSONL file notifications."""
    output_path: str
    create_dirs: bool = True


@dataclass(frozen=True)
class StdoutSinkConfig:
    """Configuration for stdout notifications."""
    format: str = "json"  # json, pretty
    include_timestamp: bool = True


@dataclass(frozen=True)
class NotificationDestination:
    """Single notification destination."""
    name: str
    method: NotificationMethod
    config: Any  # WebhookSinkConfig | FileSinkConfig | StdoutSinkConfig
    enabled: bool = True

    # Only deliver these event types (None means all)
    events_filter: Optional[list[str]] = None


@dataclass(frozen=True)
class NotificationConfig:
    """Complete notification configuration."""
    destinations: list[NotificationDestination] = field(default_factory=list)
    enabled: bool = True

    # Per-sink retry
    retry_attempts: int = 2
    retry_delay_seconds: float = 0.5


def get_default_notification_config() -> NotificationConfig:
    """Get default notification configuration: pretty-print to stdout."""
    return NotificationConfig(
        destinations=[
            NotificationDestination(
                name="stdout",
                method=NotificationMethod.STDOUT,
                config=StdoutSinkConfig(format="pretty", include_timestamp=True),
                enabled=True
            )
        ],
        enabled=True,
    )


def create_webhook_destination(
    name: str,
    url: str,
    headers: Optional[dict[str, str]] = None,
    enabled: bool = True,
    **kwargs
) -> NotificationDestination:
    """Create webhook notification destination."""
    return NotificationDestination(
        name=name,
        method=NotificationMethod.WEBHOOK,
        config=WebhookSinkConfig(
            url=url,
            headers=headers or {},
            **kwargs
        ),
        enabled=enabled
    )


def create_file_destination(
    name: str,
    output_path: str,
    enabled: bool = True,
    **kwargs
) -> NotificationDestination:
    """Create JSONL file notification destination."""
    return NotificationDestination(
        name=name,
        method=NotificationMethod.FILE_OUTPUT,
        config=FileSinkConfig(
            output_path=output_path,
            **kwargs
        ),
        enabled=enabled
    )


def notification_config_from_dict(data: Optional[dict[str, Any]]) -> NotificationConfig:
    """Build a NotificationConfig from the `notifications` section of the YAML file."""
    if not data:
        return get_default_notification_config()

    destinations = []
    for entry in data.get("destinations", []):
        method = NotificationMethod(entry["method"])
        options = dict(entry.get("options", {}))

        if method == NotificationMethod.WEBHOOK:
            config: Any = WebhookSinkConfig(**options)
        elif method == NotificationMethod.FILE_OUTPUT:
            config = FileSinkConfig(**options)
        else:
            config = StdoutSinkConfig(**options)

        destinations.append(NotificationDestination(
            name=entry["name"],
            method=method,
            config=config,
            enabled=entry.get("enabled", True),
            events_filter=entry.get("events_filter"),
        ))

    return NotificationConfig(
        destinations=destinations,
        enabled=data.get("enabled", True),
        retry_attempts=data.get("retry_attempts", 2),
        retry_delay_seconds=data.get("retry_delay_seconds", 0.5),
    )

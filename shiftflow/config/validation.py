"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


INTERVAL_FIELDS = [
    ("polling", "status_interval_seconds"),
    ("alerts", "interval_seconds"),
    ("dca", "interval_seconds"),
    ("limit_orders", "interval_seconds"),
]

PERSISTENCE_BACKENDS = ("memory", "sqlite")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_schedule_params(config: dict[str, Any]) -> list[ValidationError]:
        """Validate cycle and polling intervals."""
        errors = []

        for section, key in INTERVAL_FIELDS:
            if key not in config.get(section, {}):
                continue
            value = config[section][key]
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                errors.append(ValidationError(
                    field=f"{section}.{key}",
                    message="Must be a positive number of seconds",
                    value=value
                ))

        cancellation = config.get("cancellation", {})
        if "min_order_age_seconds" in cancellation:
            value = cancellation["min_order_age_seconds"]
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                errors.append(ValidationError(
                    field="cancellation.min_order_age_seconds",
                    message="Must be a non-negative number of seconds",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_worker_params(config: dict[str, Any]) -> list[ValidationError]:
        """Validate worker pool parameters."""
        errors = []
        workers = config.get("workers", {})

        if "max_workers" in workers:
            value = workers["max_workers"]
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                errors.append(ValidationError(
                    field="workers.max_workers",
                    message="Must be a positive integer",
                    value=value
                ))

        if "misfire_grace_seconds" in workers:
            value = workers["misfire_grace_seconds"]
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                errors.append(ValidationError(
                    field="workers.misfire_grace_seconds",
                    message="Must be a non-negative integer",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_exchange_params(config: dict[str, Any]) -> list[ValidationError]:
        """Validate exchange client and rate cache parameters."""
        errors = []
        exchange = config.get("exchange", {})

        base_url = exchange.get("base_url")
        if base_url is not None and (
            not isinstance(base_url, str) or not base_url.startswith(("http://", "https://"))
        ):
            errors.append(ValidationError(
                field="exchange.base_url",
                message="Must be an http(s) URL",
                value=base_url
            ))

        if "timeout_seconds" in exchange:
            value = exchange["timeout_seconds"]
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                errors.append(ValidationError(
                    field="exchange.timeout_seconds",
                    message="Must be a positive number",
                    value=value
                ))

        ttl = config.get("rate_cache", {}).get("ttl_seconds")
        if ttl is not None and (isinstance(ttl, bool) or not isinstance(ttl, (int, float)) or ttl < 0):
            errors.append(ValidationError(
                field="rate_cache.ttl_seconds",
                message="Must be a non-negative number",
                value=ttl
            ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = []

        errors.extend(ConfigValidator.validate_schedule_params(config))
        errors.extend(ConfigValidator.validate_worker_params(config))
        errors.extend(ConfigValidator.validate_exchange_params(config))

        backend = config.get("persistence", {}).get("backend")
        if backend is not None and backend not in PERSISTENCE_BACKENDS:
            errors.append(ValidationError(
                field="persistence.backend",
                message=f"Must be one of {', '.join(PERSISTENCE_BACKENDS)}",
                value=backend
            ))

        level = config.get("logging", {}).get("level")
        if level is not None and str(level).upper() not in LOG_LEVELS:
            errors.append(ValidationError(
                field="logging.level",
                message=f"Must be one of {', '.join(LOG_LEVELS)}",
                value=level
            ))

        return errors

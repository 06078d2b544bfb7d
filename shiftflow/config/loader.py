"""Configuration loader with 3-tier parameter precedence."""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml

from .defaults import DefaultConfig, get_default_config
from .notifications import NotificationConfig, notification_config_from_dict

CONFIG_FILENAME = "shiftflow.yaml"

# Environment variables that override exchange credentials
ENV_OVERRIDES = {
    "SIDESHIFT_SECRET": ("exchange", "secret"),
    "SIDESHIFT_AFFILIATE_ID": ("exchange", "affiliate_id"),
}


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_dir: Path
    defaults: DefaultConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def load_file_config(self) -> dict[str, Any]:
        """Load the YAML configuration file, or an empty dict when absent."""
        config_file = self.config_dir / CONFIG_FILENAME

        if not config_file.exists():
            return {}

        with open(config_file) as f:
            file_config = yaml.safe_load(f)

        return file_config or {}

    def load_env_overrides(self) -> dict[str, Any]:
        """Collect credential overrides from the environment."""
        overrides: dict[str, Any] = {}
        for env_name, (section, key) in ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value and value.strip():
                overrides.setdefault(section, {})[key] = value.strip()
        return overrides

    def merge_config(self, overrides: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Explicit overrides and environment (highest priority)
        2. YAML file
        3. Global defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)

        file_config = self.load_file_config()
        file_config.pop("notifications", None)
        config = self._deep_merge(config, file_config)

        config = self._deep_merge(config, self.load_env_overrides())

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def load(self, overrides: Optional[dict[str, Any]] = None) -> DefaultConfig:
        """Load the merged configuration as typed dataclasses."""
        return self._dict_to_config(self.merge_config(overrides))

    def load_notification_config(self) -> NotificationConfig:
        """Load notification destinations from the YAML file."""
        return notification_config_from_dict(self.load_file_config().get("notifications"))

    def _dict_to_config(self, data: dict[str, Any]) -> DefaultConfig:
        """Rebuild nested dataclasses from a merged dictionary."""
        sections = {}
        for section in fields(DefaultConfig):
            section_default = getattr(self.defaults, section.name)
            section_type = type(section_default)
            known = {f.name for f in fields(section_type)}
            values = {k: v for k, v in data.get(section.name, {}).items() if k in known}
            sections[section.name] = section_type(**values)
        return DefaultConfig(**sections)

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name, _field in obj.__dataclass_fields__.items():
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                else:
                    result[field_name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

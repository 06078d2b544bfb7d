#!/usr/bin/env python3
"""Configuration validation script."""

import sys
from pathlib import Path
from typing import List, Optional

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from shiftflow.config.loader import ConfigLoader
from shiftflow.config.validation import ConfigValidator, ValidationError


def validate(loader: ConfigLoader, overrides: Optional[dict] = None) -> List[ValidationError]:
    """Validate the merged configuration with optional overrides."""
    return ConfigValidator.validate_config(loader.merge_config(overrides))


def main():
    """Main validation function."""
    config_dir = sys.argv[1] if len(sys.argv) > 1 else None
    print("🔍 Validating shiftflow configuration...")

    loader = ConfigLoader.create(config_dir)
    print(f"📁 Config directory: {loader.config_dir}")

    all_valid = True

    try:
        errors = validate(loader)
        if errors:
            print(f"❌ Found {len(errors)} validation errors:")
            for error in errors:
                print(f"  • {error.field}: {error.message} (value: {error.value})")
            all_valid = False
        else:
            config = loader.load()
            print("✅ Engine configuration is valid")
            print(f"  • alerts every {config.alerts.interval_seconds}s, "
                  f"DCA every {config.dca.interval_seconds}s, "
                  f"limit orders every {config.limit_orders.interval_seconds}s")
            print(f"  • persistence backend: {config.persistence.backend}")
            print(f"  • exchange secret configured: {'yes' if config.exchange.secret else 'no'}")
    except Exception as e:
        print(f"❌ Error loading configuration: {e}")
        all_valid = False

    print("\n📣 Checking notification destinations...")
    try:
        notifications = loader.load_notification_config()
        for destination in notifications.destinations:
            state = "enabled" if destination.enabled else "disabled"
            print(f"  • {destination.name}: {destination.method.value} ({state})")
        print("✅ Notification configuration is valid")
    except Exception as e:
        print(f"❌ Invalid notification configuration: {e}")
        all_valid = False

    print("\n📋 Testing runtime overrides...")
    test_overrides = {
        "workers": {"max_workers": 8},
        "rate_cache": {"ttl_seconds": 10},
    }
    errors = validate(loader, test_overrides)
    if errors:
        print("❌ Override validation failed:")
        for error in errors:
            print(f"  • {error.field}: {error.message}")
        all_valid = False
    else:
        print("✅ Override validation passed")

    if all_valid:
        print("\n🎉 All configuration validation passed!")
        sys.exit(0)
    else:
        print("\n❌ Configuration validation failed!")
        sys.exit(1)


if __name__ == "__main__":
    main()

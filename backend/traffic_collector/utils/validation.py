"""
Input Validation Utilities
===========================

Validation functions for the collector configuration.

Each validator returns a list of error messages (empty = valid) so that
load_config() can report every problem at once instead of one at a time.
"""

import re
from typing import Optional

from traffic_collector.models import DeviceConfig


# Telraam only lets us ask for 3 months at a time
MIN_DAYS_TO_FETCH = 1
MAX_DAYS_TO_FETCH = 90


def validate_api_key(api_key: Optional[str]) -> list[str]:
    """
    Validate the Telraam API key.

    Args:
        api_key: Key from TELRAAM_API_KEY

    Returns:
        List of error messages
    """
    if not api_key or not api_key.strip():
        return [
            "TELRAAM_API_KEY environment variable is not set. "
            "Please set it in your .env file or environment."
        ]
    return []


def validate_device_id(device_id: str) -> bool:
    """
    Validate a device ID (alphanumeric, reasonable length).

    Device IDs end up in directory names (device_<id>), so nothing that
    could escape the data directory is allowed.
    """
    if not device_id:
        return False
    return bool(re.match(r'^[a-zA-Z0-9_-]{1,100}$', device_id))


def validate_devices(devices: list[DeviceConfig]) -> list[str]:
    """Check that there is at least one device and every device is complete."""
    if not devices:
        return ["No devices configured. Set TELRAAM_DEVICES_FILE or use the built-in device list."]

    errors = []
    seen = set()
    for index, device in enumerate(devices):
        if not device.id or not device.id.strip():
            errors.append(f"Device at index {index}: id is required")
        elif not validate_device_id(device.id):
            errors.append(f"Device at index {index}: invalid id '{device.id}'")
        elif device.id in seen:
            errors.append(f"Device at index {index}: duplicate id '{device.id}'")
        seen.add(device.id)

        if not device.name or not device.name.strip():
            errors.append(f"Device at index {index}: name is required")
        if not device.location or not device.location.strip():
            errors.append(f"Device at index {index}: location is required")

    return errors


def validate_days_to_fetch(days: int, name: str = "daysToFetch") -> list[str]:
    """Days window must be a whole number between 1 and 90."""
    errors = []
    if not isinstance(days, int) or days < MIN_DAYS_TO_FETCH:
        errors.append(f"{name} must be greater than 0")
    elif days > MAX_DAYS_TO_FETCH:
        errors.append(f"{name} cannot exceed {MAX_DAYS_TO_FETCH} (API limit: 3 months)")
    return errors

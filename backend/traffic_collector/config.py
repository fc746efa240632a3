"""
Configuration
=============

Application configuration loaded from environment variables.

Environment Variables:
    TELRAAM_API_KEY: Telraam API key (required)
    TELRAAM_API_URL: API base URL (default: https://telraam-api.net)
    TELRAAM_DATA_DIR: Where JSON files go (default: ./docs/data)
    TELRAAM_DAYS_TO_FETCH: Days of history per run (default: 3, 1-90)
    TELRAAM_INITIAL_DAYS_TO_FETCH: Days for a device with no data yet (default: 90, 1-90)
    TELRAAM_REQUEST_DELAY_MS: Pause between devices (default: 2000, 0-30000)
    TELRAAM_DEVICES_FILE: JSON file with [{"id", "name", "location"}, ...]
                          (default: the built-in device list below)
    TELRAAM_COLLECTION_INTERVAL_MINUTES: Interval for --schedule mode (default: 60)
    LOG_LEVEL: Logging level (default: INFO)

Values in a .env file are picked up too (see main.py).
Out-of-range numbers are clamped; values that aren't numbers fall back to
the default.
"""

import json
import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from traffic_collector.errors import ConfigurationError
from traffic_collector.models import DeviceConfig
from traffic_collector.services.telraam_client import TelraamClient
from traffic_collector.utils.validation import (
    MAX_DAYS_TO_FETCH,
    MIN_DAYS_TO_FETCH,
    validate_api_key,
    validate_days_to_fetch,
    validate_devices,
)


DEFAULT_DATA_DIR = "./docs/data"
DEFAULT_DAYS_TO_FETCH = 3
DEFAULT_INITIAL_DAYS_TO_FETCH = 90
DEFAULT_REQUEST_DELAY_MS = 2000
MIN_REQUEST_DELAY_MS = 0
MAX_REQUEST_DELAY_MS = 30_000
DEFAULT_COLLECTION_INTERVAL_MINUTES = 60

# Devices collected when TELRAAM_DEVICES_FILE isn't set
DEFAULT_DEVICES = [
    DeviceConfig(id="9000008311", name="Sophienstraße", location="Karlsruhe, Germany"),
    DeviceConfig(id="9000008322", name="Georg-Friedrich-Straße", location="Karlsruhe, Germany"),
    DeviceConfig(id="9000008891", name="Telraam 9000008891", location="Rheinstetten, Germany"),
    DeviceConfig(id="9000008652", name="Telraam 9000008652", location="Rheinstetten, Germany"),
]


class AppConfig(BaseModel):
    """Validated configuration for one collector process."""
    api_key: str
    api_url: str = TelraamClient.BASE_URL
    data_dir: Path = Path(DEFAULT_DATA_DIR)
    devices: list[DeviceConfig] = Field(default_factory=list)
    days_to_fetch: int = DEFAULT_DAYS_TO_FETCH
    initial_days_to_fetch: int = DEFAULT_INITIAL_DAYS_TO_FETCH
    request_delay_ms: int = DEFAULT_REQUEST_DELAY_MS
    collection_interval_minutes: int = DEFAULT_COLLECTION_INTERVAL_MINUTES
    log_level: str = "INFO"

    @property
    def request_delay(self) -> float:
        """Delay between devices in seconds."""
        return self.request_delay_ms / 1000


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None or not value.strip():
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def resolve_int(
    value: Optional[str],
    default: int,
    minimum: int,
    maximum: Optional[int] = None,
) -> int:
    """Parse an integer env value, clamp it to [minimum, maximum], or use the default."""
    parsed = _parse_int(value)
    if parsed is None:
        return default
    parsed = max(parsed, minimum)
    if maximum is not None:
        parsed = min(parsed, maximum)
    return parsed


def load_devices(path) -> list[DeviceConfig]:
    """
    Load the device list from a JSON file.

    Raises:
        ConfigurationError: If the file is missing or malformed
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigurationError([f"Devices file not found: {path}"])
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError([f"Could not read devices file {path}: {e}"]) from e

    if not isinstance(data, list):
        raise ConfigurationError([f"Devices file {path} must contain a JSON list"])

    try:
        return [DeviceConfig.model_validate(item) for item in data]
    except ValidationError as e:
        raise ConfigurationError([f"Invalid device entry in {path}: {e}"]) from e


def load_config(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """
    Build the configuration from environment variables.

    Call this after load_dotenv() so .env values are visible.

    Raises:
        ConfigurationError: With every problem found, not just the first
    """
    env = os.environ if env is None else env

    devices_file = env.get("TELRAAM_DEVICES_FILE")
    devices = load_devices(devices_file) if devices_file else list(DEFAULT_DEVICES)

    config = AppConfig(
        api_key=(env.get("TELRAAM_API_KEY") or "").strip(),
        api_url=env.get("TELRAAM_API_URL") or TelraamClient.BASE_URL,
        data_dir=Path(env.get("TELRAAM_DATA_DIR") or DEFAULT_DATA_DIR),
        devices=devices,
        days_to_fetch=resolve_int(
            env.get("TELRAAM_DAYS_TO_FETCH"),
            DEFAULT_DAYS_TO_FETCH,
            MIN_DAYS_TO_FETCH,
            MAX_DAYS_TO_FETCH,
        ),
        initial_days_to_fetch=resolve_int(
            env.get("TELRAAM_INITIAL_DAYS_TO_FETCH"),
            DEFAULT_INITIAL_DAYS_TO_FETCH,
            MIN_DAYS_TO_FETCH,
            MAX_DAYS_TO_FETCH,
        ),
        request_delay_ms=resolve_int(
            env.get("TELRAAM_REQUEST_DELAY_MS"),
            DEFAULT_REQUEST_DELAY_MS,
            MIN_REQUEST_DELAY_MS,
            MAX_REQUEST_DELAY_MS,
        ),
        collection_interval_minutes=resolve_int(
            env.get("TELRAAM_COLLECTION_INTERVAL_MINUTES"),
            DEFAULT_COLLECTION_INTERVAL_MINUTES,
            1,
        ),
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
    )

    errors = (
        validate_api_key(config.api_key)
        + validate_devices(config.devices)
        + validate_days_to_fetch(config.days_to_fetch)
        + validate_days_to_fetch(config.initial_days_to_fetch, "initialDaysToFetch")
    )
    if errors:
        raise ConfigurationError(errors)

    return config

"""Tests for configuration loading and validation."""

import json
from pathlib import Path

import pytest

from traffic_collector.config import DEFAULT_DEVICES, load_config, load_devices, resolve_int
from traffic_collector.errors import ConfigurationError
from traffic_collector.models import DeviceConfig
from traffic_collector.utils.validation import validate_days_to_fetch, validate_devices


def test_load_config_defaults():
    config = load_config({"TELRAAM_API_KEY": "abc"})

    assert config.api_key == "abc"
    assert config.api_url == "https://telraam-api.net"
    assert config.data_dir == Path("./docs/data")
    assert config.days_to_fetch == 3
    assert config.initial_days_to_fetch == 90
    assert config.request_delay_ms == 2000
    assert config.request_delay == 2.0
    assert config.devices == DEFAULT_DEVICES


def test_load_config_missing_api_key():
    with pytest.raises(ConfigurationError) as exc_info:
        load_config({})

    assert any("TELRAAM_API_KEY" in error for error in exc_info.value.errors)


def test_load_config_clamps_values():
    config = load_config({
        "TELRAAM_API_KEY": "abc",
        "TELRAAM_DAYS_TO_FETCH": "500",
        "TELRAAM_INITIAL_DAYS_TO_FETCH": "0",
        "TELRAAM_REQUEST_DELAY_MS": "-5",
    })

    assert config.days_to_fetch == 90
    assert config.initial_days_to_fetch == 1
    assert config.request_delay_ms == 0


def test_load_config_ignores_non_numbers():
    config = load_config({
        "TELRAAM_API_KEY": "abc",
        "TELRAAM_DAYS_TO_FETCH": "lots",
        "TELRAAM_REQUEST_DELAY_MS": "",
    })

    assert config.days_to_fetch == 3
    assert config.request_delay_ms == 2000


def test_load_config_devices_file(tmp_path):
    devices_file = tmp_path / "devices.json"
    devices_file.write_text(json.dumps([
        {"id": "42", "name": "Main Street", "location": "Somewhere"},
    ]), encoding="utf-8")

    config = load_config({
        "TELRAAM_API_KEY": "abc",
        "TELRAAM_DEVICES_FILE": str(devices_file),
        "TELRAAM_DATA_DIR": str(tmp_path / "data"),
    })

    assert config.devices == [DeviceConfig(id="42", name="Main Street", location="Somewhere")]
    assert config.data_dir == tmp_path / "data"


def test_load_devices_errors(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_devices(tmp_path / "missing.json")

    bad = tmp_path / "bad.json"
    bad.write_text('{"id": "1"}', encoding="utf-8")
    with pytest.raises(ConfigurationError, match="JSON list"):
        load_devices(bad)


def test_invalid_devices_collects_all_errors(tmp_path):
    devices_file = tmp_path / "devices.json"
    devices_file.write_text(json.dumps([
        {"id": "../etc", "name": "", "location": "x"},
        {"id": "7", "name": "ok", "location": " "},
    ]), encoding="utf-8")

    with pytest.raises(ConfigurationError) as exc_info:
        load_config({"TELRAAM_API_KEY": "abc", "TELRAAM_DEVICES_FILE": str(devices_file)})

    assert len(exc_info.value.errors) == 3


def test_validate_devices_rules():
    assert validate_devices([]) != []
    assert validate_devices([DeviceConfig(id="1", name="a", location="b")]) == []
    duplicate = [DeviceConfig(id="1", name="a", location="b")] * 2
    assert any("duplicate" in e for e in validate_devices(duplicate))


def test_validate_days_to_fetch():
    assert validate_days_to_fetch(1) == []
    assert validate_days_to_fetch(90) == []
    assert validate_days_to_fetch(0) != []
    assert validate_days_to_fetch(91) != []


def test_resolve_int():
    assert resolve_int("10", 3, 1, 90) == 10
    assert resolve_int(None, 3, 1, 90) == 3
    assert resolve_int(" 7 ", 3, 1) == 7
    assert resolve_int("100000", 3, 1) == 100000

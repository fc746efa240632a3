"""
Test Configuration
==================

Pytest fixtures shared by the collector tests.
"""

import pytest

from traffic_collector.models import DeviceConfig, TrafficReading
from traffic_collector.services import Storage


@pytest.fixture
def make_reading():
    """Factory for TrafficReading objects with sensible defaults."""
    def _make(date="2024-06-01", hour=0, car=10, **fields):
        values = {
            "date": date,
            "hour": hour,
            "uptime": 0.8,
            "heavy": 1,
            "car": car,
            "bike": 5,
            "pedestrian": 2,
            "direction": 1,
            "timezone": "Europe/Berlin",
        }
        values.update(fields)
        return TrafficReading(**values)
    return _make


@pytest.fixture
def data_dir(tmp_path):
    """Data directory laid out like the real one (docs/data)."""
    path = tmp_path / "docs" / "data"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def storage(data_dir):
    return Storage(data_dir)


@pytest.fixture
def devices():
    return [
        DeviceConfig(id="1001", name="Device One", location="Karlsruhe"),
        DeviceConfig(id="1002", name="Device Two", location="Karlsruhe"),
        DeviceConfig(id="1003", name="Device Three", location="Rheinstetten"),
    ]

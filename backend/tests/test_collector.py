"""Tests for a full collection run with fake API clients."""

import asyncio
import json

import pytest

from traffic_collector.errors import CollectionError, StorageError, TelraamApiError
from traffic_collector.models import DeviceMetadata
from traffic_collector.services import DataCollector


class FakeClient:
    """Returns canned readings per device; raises for devices listed in `failing`."""

    def __init__(self, readings_by_device=None, failing=()):
        self.readings_by_device = readings_by_device or {}
        self.failing = set(failing)
        self.calls = []

    async def fetch_readings(self, device_id, date_range):
        self.calls.append((device_id, date_range))
        if device_id in self.failing:
            raise TelraamApiError("Service unavailable", 503)
        return list(self.readings_by_device.get(device_id, []))


def make_collector(client, storage, devices, sleeps=None, **kwargs):
    async def fake_sleep(delay):
        if sleeps is not None:
            sleeps.append(delay)

    kwargs.setdefault("days_to_fetch", 3)
    kwargs.setdefault("request_delay", 0)
    return DataCollector(client=client, storage=storage, devices=devices, sleep=fake_sleep, **kwargs)


def test_collect_all_devices_success(storage, devices, data_dir, make_reading):
    readings = {
        "1001": [make_reading(date="2024-06-30", hour=23), make_reading(date="2024-07-01", hour=0)],
        "1002": [make_reading(hour=0)],
        "1003": [make_reading(hour=1), make_reading(hour=2)],
    }
    collector = make_collector(FakeClient(readings), storage, devices)

    summary = asyncio.run(collector.collect_all_devices())

    assert summary.total_devices == 3
    assert summary.successful_devices == 3
    assert summary.failed_devices == 0
    assert summary.total_data_points == 5
    assert (data_dir / "device_1001" / "hourly" / "2024-06.json").exists()
    assert (data_dir / "device_1001" / "hourly" / "2024-07.json").exists()
    assert (data_dir / "device_1001" / "daily" / "2024-07.json").exists()
    assert (data_dir / "devices.json").exists()
    assert (data_dir.parent / "index.html").exists()


def test_failed_device_is_isolated(storage, devices, data_dir, make_reading):
    """Device 2 fails; devices 1 and 3 still succeed and the run reports 1 failure."""
    readings = {
        "1001": [make_reading(hour=0)],
        "1003": [make_reading(hour=0)],
    }
    client = FakeClient(readings, failing={"1002"})
    collector = make_collector(client, storage, devices)

    with pytest.raises(CollectionError) as exc_info:
        asyncio.run(collector.collect_all_devices())

    summary = exc_info.value.summary
    assert summary.failed_devices == 1
    assert summary.successful_devices == 2
    results = {r.device_id: r for r in summary.results}
    assert results["1001"].success is True
    assert results["1003"].success is True
    assert results["1002"].success is False
    assert results["1002"].error_type == "api_error"
    assert results["1002"].error == "API Error (503): Service unavailable"

    # Metadata and landing page are still written for the whole run
    metadata = json.loads((data_dir / "devices.json").read_text(encoding="utf-8"))
    assert [m["id"] for m in metadata] == ["1001", "1002", "1003"]
    assert (data_dir.parent / "index.html").exists()


def test_storage_failure_is_isolated(storage, devices, make_reading, monkeypatch):
    original = storage.save_monthly_data

    async def flaky_save(device_id, month, readings):
        if device_id == "1001":
            raise StorageError("Failed to save monthly data", OSError("disk full"))
        return await original(device_id, month, readings)

    monkeypatch.setattr(storage, "save_monthly_data", flaky_save)
    readings = {device.id: [make_reading()] for device in devices}
    collector = make_collector(FakeClient(readings), storage, devices)

    with pytest.raises(CollectionError) as exc_info:
        asyncio.run(collector.collect_all_devices())

    results = {r.device_id: r for r in exc_info.value.summary.results}
    assert results["1001"].error_type == "storage_error"
    assert "disk full" in results["1001"].error
    assert results["1002"].success and results["1003"].success


def test_corrupt_stored_month_fails_only_that_device(storage, devices, data_dir, make_reading):
    """An unreadable older month fails its device at recount time; the run goes on."""
    corrupt = data_dir / "device_1001" / "hourly" / "2024-05.json"
    corrupt.parent.mkdir(parents=True)
    corrupt.write_text("{not json", encoding="utf-8")
    readings = {device.id: [make_reading()] for device in devices}
    client = FakeClient(readings)
    collector = make_collector(client, storage, devices)

    with pytest.raises(CollectionError) as exc_info:
        asyncio.run(collector.collect_all_devices())

    assert [device_id for device_id, _ in client.calls] == ["1001", "1002", "1003"]
    summary = exc_info.value.summary
    assert summary.failed_devices == 1
    results = {r.device_id: r for r in summary.results}
    assert results["1001"].success is False
    assert results["1001"].error_type == "storage_error"
    assert results["1002"].success and results["1003"].success

    metadata = json.loads((data_dir / "devices.json").read_text(encoding="utf-8"))
    assert [m["id"] for m in metadata] == ["1001", "1002", "1003"]
    assert metadata[0]["totalDataPoints"] == 0
    assert metadata[1]["totalDataPoints"] == 1
    assert (data_dir.parent / "index.html").exists()


def test_corrupt_stored_month_keeps_previous_total(storage, devices, data_dir, make_reading):
    previous = [
        DeviceMetadata(
            id="1001", name="Device One", location="Karlsruhe",
            last_updated="2024-05-31", total_data_points=42,
        ),
    ]
    asyncio.run(storage.save_device_metadata(previous))
    corrupt = data_dir / "device_1001" / "hourly" / "2024-05.json"
    corrupt.parent.mkdir(parents=True)
    corrupt.write_text("{not json", encoding="utf-8")
    collector = make_collector(FakeClient(), storage, devices[:1])

    with pytest.raises(CollectionError):
        asyncio.run(collector.collect_all_devices())

    metadata = json.loads((data_dir / "devices.json").read_text(encoding="utf-8"))
    assert metadata[0]["totalDataPoints"] == 42
    assert metadata[0]["lastUpdated"] == "2024-05-31"


def test_corrupt_device_metadata_does_not_abort_run(storage, devices, data_dir, make_reading):
    (data_dir / "devices.json").write_text("[{", encoding="utf-8")
    readings = {device.id: [make_reading()] for device in devices}
    client = FakeClient(readings)
    collector = make_collector(client, storage, devices)

    summary = asyncio.run(collector.collect_all_devices())

    assert summary.successful_devices == 3
    assert len(client.calls) == 3
    assert (data_dir / "devices.json.backup").read_text(encoding="utf-8") == "[{"
    metadata = json.loads((data_dir / "devices.json").read_text(encoding="utf-8"))
    assert [m["id"] for m in metadata] == ["1001", "1002", "1003"]


def test_metadata_keeps_previous_last_updated_without_new_data(storage, devices):
    """A device with no new readings keeps last run's lastUpdated."""
    previous = [
        DeviceMetadata(id="1001", name="Device One", location="Karlsruhe", last_updated="2024-05-20"),
    ]
    asyncio.run(storage.save_device_metadata(previous))
    collector = make_collector(FakeClient(), storage, devices[:1])

    asyncio.run(collector.collect_all_devices())

    metadata = asyncio.run(storage.load_device_metadata())
    assert metadata[0].last_updated == "2024-05-20"
    assert metadata[0].total_data_points == 0


def test_metadata_last_updated_is_latest_reading_date(storage, devices, make_reading):
    readings = {"1001": [
        make_reading(date="2024-06-03", hour=1),
        make_reading(date="2024-06-05", hour=0),
        make_reading(date="bogus", hour=2),
        make_reading(date="2024-06-04", hour=23),
    ]}
    collector = make_collector(FakeClient(readings), storage, devices[:1])

    summary = asyncio.run(collector.collect_all_devices())

    assert summary.results[0].last_updated == "2024-06-05"
    # the bogus reading was skipped, not saved
    assert summary.results[0].data_points_collected == 3
    metadata = asyncio.run(storage.load_device_metadata())
    assert metadata[0].last_updated == "2024-06-05"


def test_total_data_points_recomputed_from_storage(storage, devices, make_reading):
    """totalDataPoints reflects stored readings, not how many runs happened."""
    device = devices[:1]
    first = {"1001": [make_reading(hour=h) for h in range(4)]}
    second = {"1001": [make_reading(hour=h) for h in range(2, 8)]}

    asyncio.run(make_collector(FakeClient(first), storage, device).collect_all_devices())
    asyncio.run(make_collector(FakeClient(second), storage, device).collect_all_devices())

    metadata = asyncio.run(storage.load_device_metadata())
    assert metadata[0].total_data_points == 8
    assert metadata[0].total_data_points == asyncio.run(storage.get_total_hourly_data_points("1001"))


def test_daily_file_built_from_merged_month(storage, devices, make_reading):
    """Daily rollups cover everything stored for the month, not just the last fetch."""
    device = devices[:1]
    first = {"1001": [make_reading(hour=0, car=10)]}
    second = {"1001": [make_reading(hour=1, car=20)]}

    asyncio.run(make_collector(FakeClient(first), storage, device).collect_all_devices())
    asyncio.run(make_collector(FakeClient(second), storage, device).collect_all_devices())

    daily = asyncio.run(storage.load_daily_data("1001", "2024-06"))
    assert len(daily.days) == 1
    assert daily.days[0].car == 30
    assert daily.days[0].hours_covered == 2


def test_delay_between_devices_not_after_last(storage, devices):
    sleeps = []
    collector = make_collector(FakeClient(), storage, devices, sleeps=sleeps, request_delay=1.5)

    asyncio.run(collector.collect_all_devices())

    assert sleeps == [1.5, 1.5]


def test_devices_processed_in_order(storage, devices):
    client = FakeClient()
    collector = make_collector(client, storage, devices)

    asyncio.run(collector.collect_all_devices())

    assert [device_id for device_id, _ in client.calls] == ["1001", "1002", "1003"]


def test_initial_window_for_devices_without_data(storage, devices, make_reading):
    """Devices with nothing stored get the longer first-run window."""
    asyncio.run(storage.save_monthly_data("1001", "2024-06", [make_reading()]))
    client = FakeClient()
    collector = make_collector(client, storage, devices[:2], days_to_fetch=3, initial_days_to_fetch=90)

    asyncio.run(collector.collect_all_devices())

    windows = {device_id: (r.end - r.start).days for device_id, r in client.calls}
    assert windows["1001"] == 3
    assert windows["1002"] == 90


def test_final_metadata_failure_aborts_run(storage, devices, monkeypatch):
    async def broken_save(devices):
        raise StorageError("Error while saving device metadata", OSError("read-only"))

    monkeypatch.setattr(storage, "save_device_metadata", broken_save)
    collector = make_collector(FakeClient(), storage, devices)

    with pytest.raises(StorageError):
        asyncio.run(collector.collect_all_devices())


def test_get_latest_data_timestamp_empty():
    assert DataCollector.get_latest_data_timestamp([]) is None


def test_rebuild_daily_data(storage, devices, make_reading):
    asyncio.run(storage.save_monthly_data("1001", "2024-06", [make_reading(hour=0), make_reading(hour=1)]))
    collector = make_collector(FakeClient(), storage, devices)

    assert asyncio.run(collector.rebuild_daily_data()) == 1
    assert asyncio.run(storage.load_daily_data("1001", "2024-06")).days[0].hours_covered == 2

"""
Storage
=======

Everything that touches the data directory goes through here.

WHAT IT DOES:
------------
1. devices.json: load/save the device directory (overwritten every run)
2. Monthly hourly files: load existing -> merge -> write back
3. Daily aggregate files: load existing -> merge -> write back
4. Counts stored readings per device (ground truth for totalDataPoints)
5. Regenerates the landing page listing all JSON files

LEGACY FILES:
------------
Older versions wrote monthly files to device_<id>/<YYYY-MM>.json. Those are
still read as a fallback. After a merged file is written to the new
hourly/ location, the legacy file is deleted (never before).

WRITES:
------
Whole-file replace (read-modify-write), atomic per file. There is no locking;
only one collector process may run against a data directory at a time.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

from pydantic import ValidationError

from traffic_collector.errors import StorageError
from traffic_collector.models import (
    DailyData,
    DailyEntry,
    DeviceMetadata,
    MonthlyData,
    TrafficReading,
)
from traffic_collector.services.data_merger import DataMerger
from traffic_collector.services.file_service import FileService
from traffic_collector.services.html_generator import HTMLGenerator
from traffic_collector.services.path_manager import PathManager
from traffic_collector.utils.dates import utc_now_iso

logger = logging.getLogger(__name__)


class Storage:
    """
    Persistence facade for device data and metadata.

    HOW TO USE:
    ----------
    storage = Storage("./docs/data")

    merged = await storage.save_monthly_data("9000008311", "2024-06", readings)
    entries = storage.data_merger.build_daily_entries(merged.data)
    await storage.save_daily_data("9000008311", "2024-06", entries)
    """

    def __init__(
        self,
        data_dir,
        file_service: Optional[FileService] = None,
        data_merger: Optional[DataMerger] = None,
        html_generator: Optional[HTMLGenerator] = None,
    ):
        self.path_manager = PathManager(data_dir)
        self.file_service = file_service or FileService()
        self.data_merger = data_merger or DataMerger()
        self.html_generator = html_generator or HTMLGenerator()


    # =========================================================================
    # DEVICE METADATA
    # =========================================================================

    async def load_device_metadata(self) -> list[DeviceMetadata]:
        """Load devices.json. Returns [] if it doesn't exist yet."""
        path = self.path_manager.get_device_metadata_path()
        data = self.file_service.read_json(path, "loading device metadata")

        if not data:
            logger.debug("No existing device metadata found")
            return []

        try:
            return [DeviceMetadata.model_validate(item) for item in data]
        except (ValidationError, TypeError) as e:
            raise StorageError(f"Invalid device metadata in {path}", e) from e

    async def save_device_metadata(self, devices: list[DeviceMetadata]) -> None:
        """Overwrite devices.json with the complete list."""
        path = self.path_manager.get_device_metadata_path()
        payload = [device.model_dump(by_alias=True) for device in devices]
        self.file_service.write_json(path, payload, "saving device metadata")
        logger.info(f"Saved metadata for {len(devices)} devices to {path}")


    # =========================================================================
    # HOURLY (MONTHLY) DATA
    # =========================================================================

    def locate_monthly_file(self, device_id: str, month: str) -> Optional[Path]:
        """
        Two-tier lookup: the hourly/ file first, then the legacy file.

        Returns:
            The first path that exists, or None
        """
        for path in (
            self.path_manager.get_hourly_file_path(device_id, month),
            self.path_manager.get_legacy_monthly_file_path(device_id, month),
        ):
            if path.is_file():
                return path
        return None

    async def load_monthly_data(self, device_id: str, month: str) -> Optional[MonthlyData]:
        """Load hourly readings for a device/month (None if nothing stored)."""
        path = self.locate_monthly_file(device_id, month)
        if path is None:
            return None
        return self._read_monthly_file(path, device_id, month)

    async def save_monthly_data(
        self,
        device_id: str,
        month: str,
        readings: Iterable[TrafficReading],
    ) -> MonthlyData:
        """
        Merge readings into the stored month and write it back.

        Returns:
            The merged MonthlyData as written

        Raises:
            StorageError: If loading or writing fails
        """
        path = self.path_manager.get_hourly_file_path(device_id, month)

        try:
            existing = await self.load_monthly_data(device_id, month)
            merged = self.data_merger.merge_readings(
                existing.data if existing else [],
                readings,
            )

            monthly = MonthlyData(
                device_id=device_id,
                month=month,
                data=merged,
                last_updated=utc_now_iso(),
            )
            self.file_service.write_json(
                path,
                monthly.model_dump(mode="json", by_alias=True),
                f"saving monthly data for device {device_id}",
            )

            self.migrate_legacy_monthly_file(device_id, month)
        except StorageError as e:
            logger.error(f"[{device_id}] Error saving monthly data for {month}: {e}")
            raise
        except Exception as e:
            logger.error(f"[{device_id}] Error saving monthly data for {month}: {e}", exc_info=True)
            raise StorageError(f"Failed to save monthly data for device {device_id}, month {month}", e) from e

        logger.info(f"[{device_id}] Saved {len(merged)} data points for month {month}")
        return monthly

    def migrate_legacy_monthly_file(self, device_id: str, month: str) -> bool:
        """
        Delete the legacy monthly file once the hourly/ file exists.

        Only call this after a successful write to the new location.

        Returns:
            True if a legacy file was removed
        """
        new_path = self.path_manager.get_hourly_file_path(device_id, month)
        legacy_path = self.path_manager.get_legacy_monthly_file_path(device_id, month)

        if legacy_path == new_path or not new_path.is_file():
            return False

        removed = self.file_service.delete_file(legacy_path)
        if removed:
            logger.info(f"[{device_id}] Migrated legacy monthly file {legacy_path.name} to {new_path}")
        return removed

    async def list_months(self, device_id: str) -> list[str]:
        """Months with stored hourly data (including legacy files), sorted."""
        months = set()
        hourly_dir = self.path_manager.get_hourly_directory(device_id)
        device_dir = self.path_manager.get_device_directory(device_id)

        for directory in (hourly_dir, device_dir):
            if directory.is_dir():
                months.update(p.stem for p in directory.glob("*.json"))

        return sorted(months)

    async def get_total_hourly_data_points(self, device_id: str) -> int:
        """
        Count every stored hourly reading for a device across all months.

        A device with no directory yet simply has 0 readings.
        """
        total = 0
        for month in await self.list_months(device_id):
            monthly = await self.load_monthly_data(device_id, month)
            if monthly:
                total += len(monthly.data)
        return total


    # =========================================================================
    # DAILY DATA
    # =========================================================================

    async def load_daily_data(self, device_id: str, month: str) -> Optional[DailyData]:
        """Load daily aggregates for a device/month (None if nothing stored)."""
        path = self.path_manager.get_daily_file_path(device_id, month)
        data = self.file_service.read_json(
            path,
            f"loading daily data for device {device_id}, month {month}",
        )
        if data is None:
            return None

        try:
            return DailyData.model_validate(data)
        except ValidationError as e:
            raise StorageError(f"Invalid daily data in {path}", e) from e

    async def save_daily_data(
        self,
        device_id: str,
        month: str,
        entries: Iterable[DailyEntry],
    ) -> DailyData:
        """
        Merge daily entries into the stored file and write it back.

        An entry for a date that already exists replaces it completely.
        """
        path = self.path_manager.get_daily_file_path(device_id, month)

        try:
            existing = await self.load_daily_data(device_id, month)
            merged = self.data_merger.merge_daily_entries(
                existing.days if existing else [],
                entries,
            )

            daily = DailyData(
                device_id=device_id,
                month=month,
                days=merged,
                last_updated=utc_now_iso(),
            )
            self.file_service.write_json(
                path,
                daily.model_dump(mode="json", by_alias=True),
                f"saving daily data for device {device_id}, month {month}",
            )
        except StorageError as e:
            logger.error(f"[{device_id}] Error saving daily data for {month}: {e}")
            raise
        except Exception as e:
            logger.error(f"[{device_id}] Error saving daily data for {month}: {e}", exc_info=True)
            raise StorageError(f"Failed to save daily data for device {device_id}, month {month}", e) from e

        logger.info(f"[{device_id}] Saved {len(merged)} daily aggregates for month {month}")
        return daily

    async def rebuild_daily_data(self, device_id: str) -> int:
        """
        Re-derive every daily file of a device from its stored hourly data.

        Returns:
            Number of months rebuilt
        """
        rebuilt = 0
        for month in await self.list_months(device_id):
            monthly = await self.load_monthly_data(device_id, month)
            if not monthly:
                continue
            entries = self.data_merger.build_daily_entries(monthly.data)
            await self.save_daily_data(device_id, month, entries)
            rebuilt += 1

        logger.info(f"[{device_id}] Rebuilt daily aggregates for {rebuilt} month(s)")
        return rebuilt


    # =========================================================================
    # LANDING PAGE
    # =========================================================================

    async def generate_landing_page(self) -> Path:
        """
        Write index.html next to the data directory, linking every JSON file.

        Returns:
            Path of the written landing page
        """
        docs_root = self.path_manager.get_docs_root()
        json_files = self.file_service.collect_json_files(self.path_manager.data_dir.resolve())
        links = sorted(p.relative_to(docs_root).as_posix() for p in json_files)

        html = self.html_generator.generate_landing_page(links)
        output_path = self.path_manager.get_landing_page_path()
        self.file_service.write_text(output_path, html, "writing landing page")

        logger.info(f"Updated landing page with {len(links)} JSON file(s) at {output_path}")
        return output_path


    # =========================================================================
    # HELPERS
    # =========================================================================

    def _read_monthly_file(self, path: Path, device_id: str, month: str) -> Optional[MonthlyData]:
        data = self.file_service.read_json(
            path,
            f"loading monthly data for device {device_id}, month {month}",
        )
        if data is None:
            return None

        try:
            return MonthlyData.model_validate(data)
        except ValidationError as e:
            raise StorageError(f"Invalid monthly data in {path}", e) from e

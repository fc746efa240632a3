"""
Data Collector
==============

This is the BRAIN of a collection run!

WHAT A RUN DOES:
---------------
1. Load devices.json from the last run (for fallback lastUpdated values)
2. For each device, one at a time:
   - Fetch recent hourly readings from the API
   - Split them by month
   - For each month: merge into the hourly file, then rebuild the daily file
   - Recount stored readings (totalDataPoints) straight from disk
3. Wait a bit between devices (be nice to the API)
4. Save devices.json and regenerate the landing page
5. Log a summary

ERROR ISOLATION:
---------------
One broken device never stops the others. Its failure is recorded in its
CollectionResult and the run moves on. At the very end, if anything failed,
collect_all_devices() raises CollectionError (with the summary attached) so
the process exit code shows the run wasn't fully successful.

Only errors while saving devices.json / the landing page escape directly -
those mean the whole run is broken.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from traffic_collector.errors import CollectionError, StorageError, TelraamApiError
from traffic_collector.models import (
    CollectionResult,
    CollectionSummary,
    DeviceConfig,
    DeviceMetadata,
    TrafficReading,
)
from traffic_collector.services.storage import Storage
from traffic_collector.utils.dates import calculate_date_range, parse_reading_date, utc_now_iso

logger = logging.getLogger(__name__)


class DataCollector:
    """
    Runs collection for all configured devices.

    The client only needs one method:
        async fetch_readings(device_id, date_range) -> list[TrafficReading]
    """

    def __init__(
        self,
        client,
        storage: Storage,
        devices: list[DeviceConfig],
        days_to_fetch: int,
        initial_days_to_fetch: Optional[int] = None,
        request_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            client: Traffic data client (TelraamClient in production; None
                    is fine when only rebuilding daily files)
            storage: Storage facade for the data directory
            devices: Devices to collect, processed in this order
            days_to_fetch: Days of history to fetch on a normal run
            initial_days_to_fetch: Days to fetch for a device with no stored
                                   data yet (defaults to days_to_fetch)
            request_delay: Seconds to wait between devices
            sleep: Awaitable sleep function (swap it out in tests)
        """
        self.client = client
        self.storage = storage
        self.devices = list(devices)
        self.days_to_fetch = days_to_fetch
        self.initial_days_to_fetch = initial_days_to_fetch or days_to_fetch
        self.request_delay = request_delay
        self._sleep = sleep


    # =========================================================================
    # RUN
    # =========================================================================

    async def collect_all_devices(self) -> CollectionSummary:
        """
        Collect data for every configured device.

        Returns:
            The run summary (only when every device succeeded)

        Raises:
            CollectionError: If one or more devices failed (summary attached)
        """
        start_time = datetime.now(timezone.utc)

        logger.info(f"Starting data collection for {len(self.devices)} devices")
        logger.info(f"Fetching last {self.days_to_fetch} days of data")
        if self.request_delay > 0:
            logger.info(f"Request delay: {self.request_delay}s between devices")

        try:
            existing_metadata = await self.storage.load_device_metadata()
        except StorageError as e:
            logger.warning(f"Ignoring previous device metadata: {e}")
            existing_metadata = []
        previous_by_id = {meta.id: meta for meta in existing_metadata}

        results: list[CollectionResult] = []
        device_metadata: list[DeviceMetadata] = []

        for index, device in enumerate(self.devices):
            result = await self.collect_single_device(device)
            metadata, result = await self._build_metadata(
                device, result, previous_by_id.get(device.id)
            )
            results.append(result)
            device_metadata.append(metadata)

            # Delay between devices (not after the last one)
            if index < len(self.devices) - 1 and self.request_delay > 0:
                logger.debug(f"Waiting {self.request_delay}s before next device...")
                await self._sleep(self.request_delay)

        await self.storage.save_device_metadata(device_metadata)
        await self.storage.generate_landing_page()

        end_time = datetime.now(timezone.utc)
        summary = self.create_summary(results, start_time, end_time)
        self.log_summary(summary)

        if summary.failed_devices > 0:
            raise CollectionError(summary)

        return summary

    async def collect_single_device(self, device: DeviceConfig) -> CollectionResult:
        """
        Fetch, merge and save one device.

        Never raises - any failure becomes a failed CollectionResult.
        """
        logger.info(f"Processing device: {device.name} ({device.id})")

        try:
            days = await self._days_for_device(device.id)
            date_range = calculate_date_range(days)
            readings = await self.client.fetch_readings(device.id, date_range)
            latest = self.get_latest_data_timestamp(readings)

            if not readings:
                logger.warning(f"[{device.id}] No data returned")
                return CollectionResult(
                    device_id=device.id,
                    success=True,
                    data_points_collected=0,
                    last_updated=latest,
                )

            saved = await self.save_device_data(device.id, readings)

            return CollectionResult(
                device_id=device.id,
                success=True,
                data_points_collected=saved,
                last_updated=latest,
            )
        except Exception as e:
            error_type = self.classify_error(e)
            error_message = self.format_error(e)
            logger.error(f"[{device.id}] Failed to collect data: {error_message}")

            return CollectionResult(
                device_id=device.id,
                success=False,
                data_points_collected=0,
                error=error_message,
                error_type=error_type,
            )

    async def save_device_data(self, device_id: str, readings: list[TrafficReading]) -> int:
        """
        Save readings month by month: hourly file first, then the daily file
        rebuilt from the merged month.

        Returns:
            Number of fetched readings that were saved
        """
        monthly_groups = self.storage.data_merger.group_by_month(readings)

        total_points = 0
        for month, month_readings in monthly_groups.items():
            merged = await self.storage.save_monthly_data(device_id, month, month_readings)
            daily_entries = self.storage.data_merger.build_daily_entries(merged.data)
            await self.storage.save_daily_data(device_id, month, daily_entries)
            total_points += len(month_readings)

        return total_points

    async def rebuild_daily_data(self) -> int:
        """Re-derive daily files for every configured device from hourly data."""
        total = 0
        for device in self.devices:
            total += await self.storage.rebuild_daily_data(device.id)
        return total


    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _days_for_device(self, device_id: str) -> int:
        if self.initial_days_to_fetch == self.days_to_fetch:
            return self.days_to_fetch

        stored = await self.storage.get_total_hourly_data_points(device_id)
        if stored == 0:
            logger.info(
                f"[{device_id}] No stored data yet, fetching initial {self.initial_days_to_fetch} days"
            )
            return self.initial_days_to_fetch
        return self.days_to_fetch

    async def _build_metadata(
        self,
        device: DeviceConfig,
        result: CollectionResult,
        previous: Optional[DeviceMetadata],
    ) -> tuple[DeviceMetadata, CollectionResult]:
        """
        Build the devices.json entry for a device.

        If the stored readings can't be recounted, the device's result is
        turned into a storage_error failure and the previous total is kept.
        """
        # totalDataPoints always comes from disk, not from running counters
        try:
            total_stored = await self.storage.get_total_hourly_data_points(device.id)
        except StorageError as e:
            logger.error(f"[{device.id}] Failed to count stored readings: {e}")
            total_stored = previous.total_data_points if previous is not None else 0
            if result.success:
                result = result.model_copy(update={
                    "success": False,
                    "error": self.format_error(e),
                    "error_type": "storage_error",
                })

        last_updated = result.last_updated
        if last_updated is None and previous is not None:
            last_updated = previous.last_updated
        if last_updated is None:
            last_updated = utc_now_iso()

        metadata = DeviceMetadata(
            id=device.id,
            name=device.name,
            location=device.location,
            last_updated=last_updated,
            total_data_points=total_stored,
        )
        return metadata, result

    @staticmethod
    def get_latest_data_timestamp(readings: list[TrafficReading]) -> Optional[str]:
        """
        Most recent reading date in a batch.

        Dates are compared chronologically; unparseable dates are ignored.
        """
        latest_value = None
        latest_date = None

        for reading in readings:
            parsed = parse_reading_date(reading.date)
            if parsed is None:
                continue
            if latest_date is None or parsed > latest_date:
                latest_date = parsed
                latest_value = reading.date

        return latest_value

    @staticmethod
    def classify_error(error: Exception) -> str:
        if isinstance(error, TelraamApiError):
            return "api_error"
        if isinstance(error, StorageError):
            return "storage_error"
        return "unexpected_error"

    @staticmethod
    def format_error(error: Exception) -> str:
        if isinstance(error, TelraamApiError):
            return f"API Error ({error.status_code or 'unknown'}): {error}"
        return str(error) or error.__class__.__name__

    @staticmethod
    def create_summary(
        results: list[CollectionResult],
        start_time: datetime,
        end_time: datetime,
    ) -> CollectionSummary:
        successful = sum(1 for r in results if r.success)

        return CollectionSummary(
            total_devices=len(results),
            successful_devices=successful,
            failed_devices=len(results) - successful,
            results=results,
            start_time=start_time.isoformat(),
            end_time=end_time.isoformat(),
        )

    @staticmethod
    def log_summary(summary: CollectionSummary) -> None:
        logger.info("Collection complete!")
        logger.info(
            f"Successfully processed: {summary.successful_devices}/{summary.total_devices} devices"
        )

        if summary.failed_devices > 0:
            logger.error("Errors encountered:")
            for result in summary.results:
                if not result.success:
                    logger.error(f"  - Device {result.device_id}: {result.error}")

        logger.info(f"Total data points collected: {summary.total_data_points}")

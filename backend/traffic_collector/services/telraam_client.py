"""
Telraam API Client
==================

Talks to the Telraam API and turns its hourly traffic report into
TrafficReading objects.

API Documentation: https://documenter.getpostman.com/view/8210376/TWDRqyaV

THE REQUEST:
-----------
    POST https://telraam-api.net/v1/reports/traffic
    X-Api-Key: <your key>

    {
        "level": "segments",
        "format": "per-hour",
        "id": "9000008311",
        "time_start": "2024-06-01 00:00:00Z",
        "time_end": "2024-06-04 12:00:00Z"
    }

THE RESPONSE:
------------
    {"report": [{"date": "2024-06-01T13:00:00.000Z", "car": 112.5, ...}, ...]}

Each item's timestamp is split into date ("2024-06-01") and hour (13).
Everything else is passed through as-is.

Authentication:
- Get an API key from https://telraam.net (account settings -> API)
"""

import logging
from datetime import datetime
from typing import Optional

import httpx
from pydantic import ValidationError

from traffic_collector.errors import TelraamApiError
from traffic_collector.models import DateRange, TrafficReading
from traffic_collector.utils.dates import format_api_timestamp, parse_reading_date
from traffic_collector.utils.retry import RetryStrategy

logger = logging.getLogger(__name__)


class TelraamClient:
    """
    Async client for the Telraam traffic report endpoint.

    Network retries happen in here (RetryStrategy); callers only see the
    final outcome.
    """

    BASE_URL = "https://telraam-api.net"
    TRAFFIC_ENDPOINT = "/v1/reports/traffic"
    LEVEL = "segments"
    FORMAT = "per-hour"

    def __init__(
        self,
        api_key: str,
        api_url: str = BASE_URL,
        request_timeout: float = 30.0,
        retry_strategy: Optional[RetryStrategy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Set up the client.

        Args:
            api_key: Telraam API key (sent as X-Api-Key)
            api_url: API base URL
            request_timeout: Seconds to wait for a response
            retry_strategy: Retry policy (default: 3 attempts, 1s base delay)
            transport: Custom httpx transport (used by tests)
        """
        self.api_url = api_url.rstrip("/")
        self.retry_strategy = retry_strategy or RetryStrategy(max_attempts=3, base_delay=1.0)
        self.http_client = httpx.AsyncClient(
            base_url=self.api_url,
            timeout=request_timeout,
            headers={"X-Api-Key": api_key},
            transport=transport,
        )

    async def fetch_readings(self, device_id: str, date_range: DateRange) -> list[TrafficReading]:
        """
        Fetch hourly readings for a device.

        Args:
            device_id: Telraam segment ID
            date_range: Start/end of the window

        Returns:
            Readings in the order the API returned them

        Raises:
            TelraamApiError: When the request still fails after retries
        """
        payload = {
            "level": self.LEVEL,
            "format": self.FORMAT,
            "id": device_id,
            "time_start": format_api_timestamp(date_range.start),
            "time_end": format_api_timestamp(date_range.end),
        }

        logger.info(
            f"[{device_id}] Fetching traffic data from {payload['time_start']} to {payload['time_end']}"
        )

        report = await self.retry_strategy.execute(
            lambda: self._request_report(payload),
            f"[{device_id}] Traffic request",
        )

        readings = []
        for item in report:
            reading = self.parse_report_item(item)
            if reading is None:
                logger.warning(f"[{device_id}] Skipping unparseable report item: {item!r:.200}")
                continue
            readings.append(reading)

        logger.info(f"[{device_id}] Received {len(readings)} hourly readings")
        return readings

    async def _request_report(self, payload: dict) -> list:
        """Single POST to the traffic endpoint (no retries here)."""
        try:
            response = await self.http_client.post(self.TRAFFIC_ENDPOINT, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error_body = e.response.text[:500]
            message = f"HTTP {e.response.status_code}"
            if error_body:
                message += f" - {error_body}"
            raise TelraamApiError(message, e.response.status_code) from e
        except httpx.RequestError as e:
            raise TelraamApiError(f"Network error: Unable to reach Telraam API ({e})") from e

        try:
            body = response.json()
        except ValueError as e:
            raise TelraamApiError("Invalid response from API", response.status_code) from e

        report = body.get("report") if isinstance(body, dict) else None
        if not isinstance(report, list):
            raise TelraamApiError("Invalid response from API", response.status_code)

        return report

    def parse_report_item(self, item) -> Optional[TrafficReading]:
        """
        Turn one report item into a TrafficReading.

        The API gives a full timestamp in "date"; we keep the calendar date
        and move the hour into its own field. Items that already have an
        "hour" keep it.

        Returns:
            The reading, or None if the item can't be used
        """
        if not isinstance(item, dict):
            return None

        fields = dict(item)
        raw_date = fields.get("date")

        if "hour" not in fields:
            hour = self._parse_hour(raw_date)
            if hour is None:
                return None
            fields["hour"] = hour

        if parse_reading_date(raw_date) is not None:
            fields["date"] = raw_date[:10]

        try:
            return TrafficReading.model_validate(fields)
        except ValidationError:
            return None

    @staticmethod
    def _parse_hour(value) -> Optional[int]:
        if not isinstance(value, str):
            return None
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).hour
        except ValueError:
            return None

    async def close(self):
        """Close the HTTP client."""
        await self.http_client.aclose()

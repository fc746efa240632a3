"""
Traffic Models
==============
Pydantic models for traffic readings, the files we persist, and run results.

This module defines all data structures used throughout the collector:
- Readings: One hour of counts for one device (what the API gives us)
- Files: What lands on disk (monthly hourly files, daily aggregate files)
- Devices: Configured devices and the devices.json directory record
- Results: What a collection run reports back

JSON NAMING:
    The on-disk format mixes snake_case (device_id, hours_covered) with
    camelCase (lastUpdated, totalDataPoints). Python attributes are always
    snake_case; camelCase keys are handled with aliases. Always dump with
    by_alias=True when writing files.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# Counting fields that get summed into daily entries
COUNT_FIELDS = (
    "heavy",
    "car",
    "bike",
    "pedestrian",
    "heavy_lft",
    "heavy_rgt",
    "car_lft",
    "car_rgt",
    "bike_lft",
    "bike_rgt",
    "pedestrian_lft",
    "pedestrian_rgt",
)


# =============================================================================
# READINGS
# =============================================================================

class TrafficReading(BaseModel):
    """
    One hour of traffic counts for one device.

    The (date, hour) pair is the natural key. Two readings with the same key
    are the same observation; whichever was fetched later wins.

    Readings are frozen - never mutated, only replaced. Any extra fields the
    API sends (speed histograms, segment ids, ...) are kept as-is.

    Example:
        {
            "date": "2024-06-01",
            "hour": 13,
            "uptime": 0.78,
            "heavy": 3.0,
            "car": 112.5,
            "bike": 41.0,
            "pedestrian": 18.0,
            "direction": 1,
            "timezone": "Europe/Berlin",
            "v85": 42.5
        }
    """
    model_config = ConfigDict(extra="allow", frozen=True)

    date: str = Field(..., description="Calendar date (YYYY-MM-DD)")
    hour: int = Field(..., description="Hour of day (0-23)")
    uptime: Optional[float] = Field(None, description="Fraction of the hour the counter was active")

    heavy: Optional[float] = None
    car: Optional[float] = None
    bike: Optional[float] = None
    pedestrian: Optional[float] = None
    heavy_lft: Optional[float] = None
    heavy_rgt: Optional[float] = None
    car_lft: Optional[float] = None
    car_rgt: Optional[float] = None
    bike_lft: Optional[float] = None
    bike_rgt: Optional[float] = None
    pedestrian_lft: Optional[float] = None
    pedestrian_rgt: Optional[float] = None

    direction: Optional[int] = None
    timezone: Optional[str] = None
    v85: Optional[float] = Field(None, description="85th percentile car speed (km/h)")

    @property
    def key(self) -> tuple[str, int]:
        """Natural key used for deduplication and ordering."""
        return (self.date, self.hour)


class DateRange(BaseModel):
    """Time window requested from the API (UTC instants)."""
    start: datetime
    end: datetime


# =============================================================================
# PERSISTED FILES
# =============================================================================

class MonthlyData(BaseModel):
    """
    Hourly readings for one device in one month.

    Stored at <data_dir>/device_<id>/hourly/<YYYY-MM>.json
    `data` is always sorted by (date, hour) with no duplicate keys.
    """
    model_config = ConfigDict(populate_by_name=True)

    device_id: str
    month: str = Field(..., description="Month key (YYYY-MM)")
    data: list[TrafficReading] = Field(default_factory=list)
    last_updated: str = Field(..., alias="lastUpdated")


class DailyEntry(BaseModel):
    """
    Rollup of one calendar day, derived from the hourly readings.

    Counts are sums across the day's hours; uptime is the mean of the hourly
    uptimes.
    """
    model_config = ConfigDict(frozen=True)

    date: str
    heavy: float = 0
    car: float = 0
    bike: float = 0
    pedestrian: float = 0
    heavy_lft: float = 0
    heavy_rgt: float = 0
    car_lft: float = 0
    car_rgt: float = 0
    bike_lft: float = 0
    bike_rgt: float = 0
    pedestrian_lft: float = 0
    pedestrian_rgt: float = 0
    uptime: Optional[float] = None
    hours_covered: int = 0


class DailyData(BaseModel):
    """Daily aggregates for one device in one month (daily/<YYYY-MM>.json)."""
    model_config = ConfigDict(populate_by_name=True)

    device_id: str
    month: str
    days: list[DailyEntry] = Field(default_factory=list)
    last_updated: str = Field(..., alias="lastUpdated")


# =============================================================================
# DEVICES
# =============================================================================

class DeviceConfig(BaseModel):
    """A Telraam device we collect data for."""
    id: str = Field(..., description="Telraam segment/device ID")
    name: str = Field(..., description="Human-readable name")
    location: str = Field(..., description="Where the device is")


class DeviceMetadata(BaseModel):
    """
    Entry in devices.json.

    Fields:
        last_updated: Most recent reading date ever seen for the device
        total_data_points: Live count of stored hourly readings (recomputed
                           from disk on every run, never incremented)
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    location: str
    last_updated: str = Field(..., alias="lastUpdated")
    total_data_points: int = Field(0, alias="totalDataPoints")


# =============================================================================
# RUN RESULTS
# =============================================================================

class CollectionResult(BaseModel):
    """Outcome of collecting one device."""
    model_config = ConfigDict(populate_by_name=True)

    device_id: str = Field(..., alias="deviceId")
    success: bool
    data_points_collected: int = Field(0, alias="dataPointsCollected")
    last_updated: Optional[str] = Field(None, alias="lastUpdated")
    error: Optional[str] = None
    error_type: Optional[str] = Field(
        None,
        alias="errorType",
        description="'api_error', 'storage_error' or 'unexpected_error'"
    )


class CollectionSummary(BaseModel):
    """Outcome of a full run across all devices."""
    model_config = ConfigDict(populate_by_name=True)

    total_devices: int = Field(..., alias="totalDevices")
    successful_devices: int = Field(..., alias="successfulDevices")
    failed_devices: int = Field(..., alias="failedDevices")
    results: list[CollectionResult] = Field(default_factory=list)
    start_time: str = Field(..., alias="startTime")
    end_time: str = Field(..., alias="endTime")

    @property
    def total_data_points(self) -> int:
        return sum(r.data_points_collected for r in self.results)

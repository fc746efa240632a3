"""
Models Package
==============

This is where all our data models live.
Import from here instead of the individual files.

Example:
    from traffic_collector.models import TrafficReading, MonthlyData
"""

from .traffic import (
    # The fields we sum up per day
    COUNT_FIELDS,

    # What the API gives us
    TrafficReading,
    DateRange,

    # What we write to disk
    MonthlyData,
    DailyEntry,
    DailyData,

    # Devices
    DeviceConfig,
    DeviceMetadata,

    # What a run reports back
    CollectionResult,
    CollectionSummary,
)

__all__ = [
    "COUNT_FIELDS",
    "TrafficReading",
    "DateRange",
    "MonthlyData",
    "DailyEntry",
    "DailyData",
    "DeviceConfig",
    "DeviceMetadata",
    "CollectionResult",
    "CollectionSummary",
]

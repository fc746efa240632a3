"""
Date Helpers
============

Small helpers for the date strings we get from the API and the time windows
we ask the API for.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from traffic_collector.models import DateRange


# Format the Telraam API expects for time_start / time_end
API_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%SZ"


def parse_reading_date(value) -> Optional[date]:
    """
    Parse a reading's date string.

    Accepts plain dates ("2024-06-01") and full timestamps
    ("2024-06-01T13:00:00.000Z") - only the date part is used.

    Returns:
        The calendar date, or None if the value can't be parsed
    """
    if not isinstance(value, str) or len(value) < 10:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def month_key(value: date) -> str:
    """Month key used in file names (YYYY-MM)."""
    return value.strftime("%Y-%m")


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


def calculate_date_range(days: int, now: Optional[datetime] = None) -> DateRange:
    """
    Build the fetch window: from midnight UTC `days` days ago until now.

    Args:
        days: How many days back to go (today counts as day 0)
        now: Reference time, defaults to the current UTC time
    """
    end = now or datetime.now(timezone.utc)
    start = (end - timedelta(days=days)).replace(hour=0, minute=0, second=0, microsecond=0)
    return DateRange(start=start, end=end)


def format_api_timestamp(value: datetime) -> str:
    """Format a datetime the way the Telraam API wants it (always UTC)."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(API_TIMESTAMP_FORMAT)

"""
Utility modules for the traffic data collector.
"""

from traffic_collector.utils.dates import (
    parse_reading_date,
    month_key,
    utc_now_iso,
    calculate_date_range,
    format_api_timestamp,
)
from traffic_collector.utils.retry import RetryStrategy, is_retryable_error
from traffic_collector.utils.validation import (
    validate_api_key,
    validate_device_id,
    validate_devices,
    validate_days_to_fetch,
)

__all__ = [
    "parse_reading_date",
    "month_key",
    "utc_now_iso",
    "calculate_date_range",
    "format_api_timestamp",
    "RetryStrategy",
    "is_retryable_error",
    "validate_api_key",
    "validate_device_id",
    "validate_devices",
    "validate_days_to_fetch",
]

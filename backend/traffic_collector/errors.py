"""
Errors
======

Exception types used across the collector.

Where they get caught:
- TelraamApiError, StorageError: caught at the collector's per-device
  boundary and turned into a failed CollectionResult
- CollectionError: raised once at the end of a run if any device failed
- ConfigurationError: raised before anything runs (bad env/devices)
"""

from typing import Optional


class CollectorError(Exception):
    """Base class for all collector errors."""


class ConfigurationError(CollectorError):
    """Configuration is missing or invalid."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class StorageError(CollectorError):
    """Reading or writing a data file failed. The original error is `cause`."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class TelraamApiError(CollectorError):
    """
    The Telraam API call failed.

    status_code is None for network errors (no response at all).
    Client errors (4xx) are not retryable, except 408 (timeout) and 429
    (rate limited) which usually go away on their own.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        if self.status_code is None:
            return True
        if self.status_code in (408, 429):
            return True
        return not (400 <= self.status_code < 500)


class CollectionError(CollectorError):
    """One or more devices failed during a run. The summary is attached."""

    def __init__(self, summary):
        self.summary = summary
        super().__init__(f"Collection completed with {summary.failed_devices} error(s)")

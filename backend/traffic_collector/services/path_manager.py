"""
Path Manager
============

Every file location the collector uses, in one place.

    <data_dir>/devices.json
    <data_dir>/device_<id>/hourly/<YYYY-MM>.json
    <data_dir>/device_<id>/daily/<YYYY-MM>.json
    <data_dir>/device_<id>/<YYYY-MM>.json          (legacy, read-only)
    <data_dir>/../index.html                       (landing page)
"""

from pathlib import Path


class PathManager:
    """Maps (device id, month) to paths under the data directory."""

    DEVICES_FILE = "devices.json"
    DEVICE_DIR_PREFIX = "device_"
    HOURLY_DIR = "hourly"
    DAILY_DIR = "daily"
    LANDING_PAGE = "index.html"

    def __init__(self, data_dir):
        self.data_dir = Path(data_dir)

    def get_device_directory(self, device_id: str) -> Path:
        return self.data_dir / f"{self.DEVICE_DIR_PREFIX}{device_id}"

    def get_hourly_directory(self, device_id: str) -> Path:
        return self.get_device_directory(device_id) / self.HOURLY_DIR

    def get_daily_directory(self, device_id: str) -> Path:
        return self.get_device_directory(device_id) / self.DAILY_DIR

    def get_hourly_file_path(self, device_id: str, month: str) -> Path:
        return self.get_hourly_directory(device_id) / f"{month}.json"

    def get_daily_file_path(self, device_id: str, month: str) -> Path:
        return self.get_daily_directory(device_id) / f"{month}.json"

    def get_legacy_monthly_file_path(self, device_id: str, month: str) -> Path:
        """Old layout kept monthly files directly in the device directory."""
        return self.get_device_directory(device_id) / f"{month}.json"

    def get_device_metadata_path(self) -> Path:
        return self.data_dir / self.DEVICES_FILE

    def get_docs_root(self) -> Path:
        """Parent of the data directory - the root served as a static site."""
        return self.data_dir.resolve().parent

    def get_landing_page_path(self) -> Path:
        return self.get_docs_root() / self.LANDING_PAGE

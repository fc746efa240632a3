"""
Services Package
================

These are the "workers" that do the actual work.

- DataMerger: Merges, groups and aggregates readings (pure logic)
- PathManager: Knows where every file lives
- FileService: Reads/writes JSON files (atomic writes)
- HTMLGenerator: Renders the landing page
- Storage: Load/merge/save for everything in the data directory
- TelraamClient: Talks to the Telraam API
- DataCollector: The boss that runs a collection across all devices
"""

from .data_merger import DataMerger
from .path_manager import PathManager
from .file_service import FileService
from .html_generator import HTMLGenerator
from .storage import Storage
from .telraam_client import TelraamClient
from .collector import DataCollector

__all__ = [
    "DataMerger",
    "PathManager",
    "FileService",
    "HTMLGenerator",
    "Storage",
    "TelraamClient",
    "DataCollector",
]

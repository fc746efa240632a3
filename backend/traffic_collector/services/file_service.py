"""
File Service
============

Low-level file access for the storage layer.

- JSON is written UTF-8, 2-space indented, non-ASCII kept as-is
- Writes are atomic: write to <name>.tmp first, then rename over the target.
  A crash mid-write leaves the previous file untouched.
- A missing file is not an error (read_json returns None)
- A corrupted JSON file is copied to <name>.backup and reported as StorageError
"""

import json
import logging
import shutil
from pathlib import Path
from typing import Any, Optional

from traffic_collector.errors import StorageError

logger = logging.getLogger(__name__)


class FileService:
    """Reads and writes JSON/text files."""

    ENCODING = "utf-8"
    JSON_INDENT = 2

    def read_json(self, path: Path, context: str) -> Optional[Any]:
        """
        Load a JSON file.

        Args:
            path: File to read
            context: What we were doing (used in error messages)

        Returns:
            Parsed JSON, or None if the file doesn't exist
        """
        try:
            with open(path, "r", encoding=self.ENCODING) as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing JSON while {context} ({path}): {e}")
            self._backup_corrupted_file(path)
            raise StorageError(f"Corrupted JSON file {path} while {context}", e) from e
        except OSError as e:
            raise StorageError(f"Error while {context}", e) from e

    def write_json(self, path: Path, data: Any, context: str) -> None:
        """Write data as JSON (atomic write)."""
        text = json.dumps(data, indent=self.JSON_INDENT, ensure_ascii=False)
        self.write_text(path, text + "\n", context)

    def write_text(self, path: Path, text: str, context: str) -> None:
        """Write a text file (atomic write), creating parent directories."""
        temp_file = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, "w", encoding=self.ENCODING) as f:
                f.write(text)

            # Atomic rename (works on Windows too)
            temp_file.replace(path)
        except OSError as e:
            try:
                temp_file.unlink(missing_ok=True)
            except OSError:
                logger.debug(f"Could not remove temp file {temp_file}")
            raise StorageError(f"Error while {context}", e) from e

    def delete_file(self, path: Path) -> bool:
        """
        Delete a file if it exists.

        Returns:
            True if a file was removed, False if there was nothing to remove
        """
        try:
            path.unlink()
            logger.debug(f"Deleted {path}")
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Error deleting {path}", e) from e

    def collect_json_files(self, directory: Path) -> list[Path]:
        """
        Find every .json file under a directory (recursive), sorted.

        Returns an empty list if the directory doesn't exist.
        """
        if not directory.is_dir():
            return []
        return sorted(p for p in directory.rglob("*.json") if p.is_file())

    def _backup_corrupted_file(self, path: Path) -> None:
        backup_path = path.with_name(path.name + ".backup")
        try:
            shutil.copy2(path, backup_path)
            logger.warning(f"Corrupted file backed up to {backup_path}")
        except OSError as backup_err:
            logger.error(f"Failed to backup corrupted file {path}: {backup_err}")

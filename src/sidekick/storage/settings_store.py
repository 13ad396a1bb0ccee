"""Small JSON key-value store for persisted agent metadata."""

import json
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

LAST_SYNC_DATE_KEY = "last_sync_date"


class SettingsStore:
    """Key-value settings persisted as a single JSON file.

    Writes go to a temporary file that is renamed over the original, so a
    crash mid-write leaves the previous contents intact.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_all(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Settings file {self.path} does not hold an object")
        return data

    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for ``key``, or ``default``."""
        with self._lock:
            return self._read_all().get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value under ``key``.

        Raises:
            OSError: If the file cannot be written
        """
        with self._lock:
            data = self._read_all()
            data[key] = value
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)

    def load_last_sync_date(self) -> datetime | None:
        """Read the last completed sync time, or None if unset or unreadable."""
        try:
            raw = self.get(LAST_SYNC_DATE_KEY)
            return datetime.fromisoformat(raw) if raw else None
        except (OSError, ValueError, TypeError) as e:
            logger.warning("Could not read %s from %s: %s", LAST_SYNC_DATE_KEY, self.path, e)
            return None

    def save_last_sync_date(self, value: datetime) -> None:
        """Persist the last completed sync time.

        Raises:
            OSError: If the file cannot be written
        """
        self.set(LAST_SYNC_DATE_KEY, value.isoformat())

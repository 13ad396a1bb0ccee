"""Local persistence: capture files and key-value agent settings."""

from sidekick.storage.files import CaptureFileStore, StorageUsage
from sidekick.storage.settings_store import LAST_SYNC_DATE_KEY, SettingsStore

__all__ = ["CaptureFileStore", "LAST_SYNC_DATE_KEY", "SettingsStore", "StorageUsage"]

"""Sync module for the offline operation queue and its coordinator."""

from sidekick.sync.coordinator import SyncCoordinator
from sidekick.sync.models import CoordinatorState, OperationKind, SyncOperation, SyncStatus
from sidekick.sync.queue import OperationQueue, SQLiteOperationQueue
from sidekick.sync.uploader import HttpUploader, Uploader, UploadResult

__all__ = [
    "CoordinatorState",
    "HttpUploader",
    "OperationKind",
    "OperationQueue",
    "SQLiteOperationQueue",
    "SyncCoordinator",
    "SyncOperation",
    "SyncStatus",
    "UploadResult",
    "Uploader",
]

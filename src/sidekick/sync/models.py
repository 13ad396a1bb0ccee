"""Data types shared by the sync queue, coordinator and uploader."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sidekick.monitor.connectivity import ConnectionType


class OperationKind(str, Enum):
    """Kind of network replication an operation performs."""

    UPLOAD_FNOL = "upload_fnol"
    UPLOAD_PHOTO = "upload_photo"
    UPLOAD_LIDAR_SCAN = "upload_lidar_scan"
    SYNC_CLAIM = "sync_claim"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class SyncOperation:
    """A pending replication waiting in the sync queue.

    Operations are immutable once created; the queue only ever appends
    or removes them.
    """

    kind: OperationKind
    payload: bytes | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=_new_id)
    enqueued_at: datetime = field(default_factory=_utcnow)

    @property
    def payload_size(self) -> int:
        """Payload length in bytes, 0 when absent."""
        return len(self.payload) if self.payload is not None else 0


class CoordinatorState(Enum):
    """State of the sync coordinator."""

    IDLE = "idle"
    DRAINING = "draining"


@dataclass(frozen=True)
class SyncStatus:
    """Aggregate sync state exposed to UI and settings surfaces."""

    is_syncing: bool
    last_sync_completed_at: datetime | None
    pending_count: int
    is_connected: bool
    connection_type: ConnectionType

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_syncing": self.is_syncing,
            "last_sync_completed_at": (
                self.last_sync_completed_at.isoformat()
                if self.last_sync_completed_at
                else None
            ),
            "pending_count": self.pending_count,
            "is_connected": self.is_connected,
            "connection_type": self.connection_type.value,
        }

"""Ordered holding area for pending sync operations.

Two implementations share the same contract: an in-memory queue that lives
for the process lifetime, and a SQLite-backed queue that survives restarts.
"""

import json
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Iterable

from sidekick.sync.models import OperationKind, SyncOperation


class OperationQueue:
    """In-memory FIFO queue of pending operations.

    All methods are thread-safe so producers on different threads cannot
    corrupt ordering.
    """

    def __init__(self) -> None:
        self._items: list[SyncOperation] = []
        self._lock = threading.Lock()

    def enqueue(self, operation: SyncOperation) -> None:
        """Append an operation to the tail of the queue."""
        with self._lock:
            self._items.append(operation)

    def snapshot(self) -> list[SyncOperation]:
        """Return the current contents in enqueue order without mutating."""
        with self._lock:
            return list(self._items)

    def remove(self, ids: Iterable[str]) -> None:
        """Remove exactly the operations whose id is in ``ids``.

        Unknown ids are ignored; remaining operations keep their order.
        """
        id_set = set(ids)
        if not id_set:
            return
        with self._lock:
            self._items = [op for op in self._items if op.id not in id_set]

    def count(self) -> int:
        with self._lock:
            return len(self._items)

    def close(self) -> None:
        pass


class SQLiteOperationQueue(OperationQueue):
    """SQLite-backed persistent queue for offline operations.

    Operations are queued locally while the device is offline and replayed
    when connectivity is restored. The queue persists across agent restarts.
    Ordering uses an autoincrement sequence rather than timestamps, so two
    operations enqueued in the same instant keep their order.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the operation queue.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._create_table()

    def _create_table(self) -> None:
        """Create the queue table if it doesn't exist."""
        with self._lock:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS sync_queue (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    kind TEXT NOT NULL,
                    payload BLOB,
                    metadata_json TEXT NOT NULL,
                    enqueued_at TEXT NOT NULL
                )
            """)
            self._conn.commit()

    def enqueue(self, operation: SyncOperation) -> None:
        """Append an operation to the tail of the queue.

        Args:
            operation: Operation to persist
        """
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO sync_queue (id, kind, payload, metadata_json, enqueued_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    operation.id,
                    operation.kind.value,
                    operation.payload,
                    json.dumps(operation.metadata),
                    operation.enqueued_at.isoformat(),
                ),
            )
            self._conn.commit()

    def snapshot(self) -> list[SyncOperation]:
        """Return all pending operations ordered by enqueue sequence."""
        with self._lock:
            cursor = self._conn.execute(
                """
                SELECT id, kind, payload, metadata_json, enqueued_at
                FROM sync_queue
                ORDER BY seq ASC
                """
            )
            rows = cursor.fetchall()

        return [
            SyncOperation(
                id=row["id"],
                kind=OperationKind(row["kind"]),
                payload=bytes(row["payload"]) if row["payload"] is not None else None,
                metadata=json.loads(row["metadata_json"]),
                enqueued_at=datetime.fromisoformat(row["enqueued_at"]),
            )
            for row in rows
        ]

    def remove(self, ids: Iterable[str]) -> None:
        """Delete the given operations in one transaction."""
        id_list = list(set(ids))
        if not id_list:
            return
        with self._lock:
            self._conn.executemany(
                "DELETE FROM sync_queue WHERE id = ?",
                [(item_id,) for item_id in id_list],
            )
            self._conn.commit()

    def count(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COUNT(*) FROM sync_queue").fetchone()
        return row[0]

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

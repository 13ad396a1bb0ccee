"""Sync coordinator: decides when to drain the offline queue and drives uploads."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable

from sidekick.logging import (
    log_drain_completed,
    log_operation_queued,
    log_state_change,
    log_upload_failed,
    log_upload_success,
    sync_logger,
)
from sidekick.monitor.connectivity import ConnectivityMonitor
from sidekick.storage.settings_store import SettingsStore
from sidekick.sync.models import CoordinatorState, OperationKind, SyncOperation, SyncStatus
from sidekick.sync.queue import OperationQueue
from sidekick.sync.uploader import Uploader

logger = logging.getLogger(__name__)

TRIGGER_MANUAL = "manual"
TRIGGER_CONNECTIVITY = "connectivity"
TRIGGER_ENQUEUE = "enqueue"
TRIGGER_STARTUP = "startup"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncCoordinator:
    """Replays queued operations against the remote uploader.

    A drain pass is started by an explicit sync() call, by the connectivity
    monitor going from offline to online, or by an enqueue while online.
    Only one pass runs at a time; any other trigger during a pass is a no-op,
    except that an operation enqueued after the pass took its snapshot gets
    one follow-up pass once the current one ends.
    A pass walks a snapshot of the queue in FIFO order, uploads each
    operation sequentially, and removes the ones that succeeded in one batch.
    Failures stay queued, untouched, for the next pass.

    The queue and the uploader are shared with the caller; the coordinator
    owns only the sync state (is_syncing and the last completed sync time).

    Example:
        coordinator = SyncCoordinator(OperationQueue(), uploader, monitor)
        await coordinator.start()
        coordinator.enqueue(OperationKind.UPLOAD_PHOTO, jpeg_bytes)
        await coordinator.sync()
        await coordinator.close()
    """

    def __init__(
        self,
        queue: OperationQueue,
        uploader: Uploader,
        monitor: ConnectivityMonitor,
        store: SettingsStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            queue: Store holding pending operations
            uploader: Remote uploader called once per operation
            monitor: Connectivity monitor consulted and subscribed to
            store: Optional settings store persisting the last sync time
            clock: Returns the current time (defaults to UTC now)
        """
        self._queue = queue
        self._uploader = uploader
        self._monitor = monitor
        self._store = store
        self._clock = clock or _utcnow

        self._state = CoordinatorState.IDLE
        self._last_sync_completed_at = store.load_last_sync_date() if store else None
        self._follow_up_requested = False
        self._pass_ids: set[str] | None = None
        self._final_pending: int | None = None

        self._loop: asyncio.AbstractEventLoop | None = None
        self._tasks: set[asyncio.Task] = set()
        self._subscribed = False
        self._status_callbacks: list[Callable[[SyncStatus], None]] = []

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def is_syncing(self) -> bool:
        """True only while a drain pass is running."""
        return self._state is CoordinatorState.DRAINING

    @property
    def last_sync_completed_at(self) -> datetime | None:
        """When the last drain pass finished, whether or not every upload succeeded."""
        return self._last_sync_completed_at

    @property
    def pending_count(self) -> int:
        if self._final_pending is not None:
            return self._final_pending
        return self._queue.count()

    def status(self) -> SyncStatus:
        """Snapshot of the aggregate sync state."""
        connectivity = self._monitor.current_status()
        return SyncStatus(
            is_syncing=self.is_syncing,
            last_sync_completed_at=self._last_sync_completed_at,
            pending_count=self.pending_count,
            is_connected=connectivity.is_connected,
            connection_type=connectivity.connection_type,
        )

    def on_status_change(self, callback: Callable[[SyncStatus], None]) -> None:
        """Register callback for status changes.

        Called after every enqueue, state transition and connectivity edge.

        Args:
            callback: Function called with the new SyncStatus
        """
        self._status_callbacks.append(callback)

    def _notify_status(self) -> None:
        if not self._status_callbacks:
            return
        status = self.status()
        for callback in self._status_callbacks:
            try:
                callback(status)
            except Exception as e:
                logger.error("Status callback failed: %s", e, exc_info=True)

    def _set_state(self, new_state: CoordinatorState, trigger: str) -> None:
        if self._state is new_state:
            return
        old_state = self._state
        self._state = new_state
        log_state_change(sync_logger(), old_state.value, new_state.value, trigger)
        self._notify_status()

    async def start(self) -> None:
        """Bind to the running event loop and subscribe to connectivity changes.

        If the device is online and operations are left over from a previous
        run, a drain is scheduled right away.
        """
        self._loop = asyncio.get_running_loop()
        if not self._subscribed:
            self._monitor.on_change(self._handle_connectivity_change)
            self._subscribed = True
        self._final_pending = None

        if self._monitor.is_connected and self._queue.count() > 0:
            self._schedule_drain(TRIGGER_STARTUP)

    async def close(self) -> None:
        """Unsubscribe from the monitor and wait for background drains.

        The pending count is captured here, so the status boundary keeps
        answering after the owner closes the queue.
        """
        if self._subscribed:
            self._monitor.remove_callback(self._handle_connectivity_change)
            self._subscribed = False
        await self.join()
        self._final_pending = self._queue.count()
        self._loop = None

    async def join(self) -> None:
        """Wait until every scheduled background drain has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def enqueue(
        self,
        kind: OperationKind | str,
        payload: bytes | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> SyncOperation:
        """Queue an operation for replication.

        Safe to call from any thread. If the device is online a drain is
        scheduled immediately.

        Args:
            kind: Operation kind
            payload: Bytes to upload, if any
            metadata: Small JSON-serializable dict sent along with the upload

        Returns:
            The queued SyncOperation
        """
        operation = SyncOperation(
            kind=OperationKind(kind),
            payload=payload,
            metadata=dict(metadata or {}),
        )
        self._queue.enqueue(operation)
        self._final_pending = None

        log_operation_queued(
            sync_logger(),
            operation.id,
            operation.kind.value,
            operation.payload_size,
            self._queue.count(),
        )
        self._notify_status()

        if self.is_syncing:
            pass_ids = self._pass_ids
            if pass_ids is not None and operation.id not in pass_ids:
                # appended after the running pass took its snapshot
                self._follow_up_requested = True

        if self._monitor.is_connected:
            self._schedule_drain(TRIGGER_ENQUEUE)
        return operation

    async def sync(self) -> bool:
        """Run one drain pass now.

        Returns:
            True if a pass ran, False if it was skipped because a pass was
            already running or the device is offline
        """
        return await self._drain(TRIGGER_MANUAL)

    def _handle_connectivity_change(self, is_connected: bool) -> None:
        if is_connected:
            self._schedule_drain(TRIGGER_CONNECTIVITY)
        self._notify_status()

    def _schedule_drain(self, trigger: str) -> None:
        """Start a background drain on the coordinator's event loop.

        Triggers arriving from other threads are handed to the loop with
        call_soon_threadsafe.
        """
        try:
            running_loop = asyncio.get_running_loop()
        except RuntimeError:
            running_loop = None

        if running_loop is not None and (self._loop is None or running_loop is self._loop):
            self._spawn_drain(trigger)
        elif self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._spawn_drain, trigger)
        else:
            logger.debug("No event loop bound, drain deferred: trigger=%s", trigger)

    def _spawn_drain(self, trigger: str) -> None:
        if self.is_syncing:
            return
        task = asyncio.get_running_loop().create_task(self._drain(trigger))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _drain(self, trigger: str) -> bool:
        """Execute a single drain pass.

        Args:
            trigger: What started the pass (manual, connectivity, enqueue, startup)

        Returns:
            True if the pass ran
        """
        if self.is_syncing:
            logger.debug("Drain skipped, already syncing: trigger=%s", trigger)
            return False

        if not self._monitor.is_connected:
            logger.debug("Drain skipped, offline: trigger=%s", trigger)
            return False

        # Only an explicit sync() counts an empty queue as a completed attempt
        if trigger != TRIGGER_MANUAL and self._queue.count() == 0:
            return False

        operations = self._queue.snapshot()
        self._pass_ids = {operation.id for operation in operations}
        self._follow_up_requested = False
        self._set_state(CoordinatorState.DRAINING, trigger)

        succeeded: list[str] = []
        failed = 0
        completed = False
        try:
            for operation in operations:
                if await self._execute(operation):
                    succeeded.append(operation.id)
                else:
                    failed += 1
            completed = True
        finally:
            self._pass_ids = None
            self._queue.remove(succeeded)
            if completed:
                self._record_sync_completed()
            self._set_state(CoordinatorState.IDLE, trigger)

        log_drain_completed(
            sync_logger(),
            trigger,
            succeeded=len(succeeded),
            failed=failed,
            pending_count=self._queue.count(),
        )

        if self._follow_up_requested:
            self._follow_up_requested = False
            self._schedule_drain(TRIGGER_ENQUEUE)
        return True

    async def _execute(self, operation: SyncOperation) -> bool:
        """Upload one operation; any failure leaves it queued."""
        try:
            result = await self._uploader.upload(
                operation.kind,
                operation.payload,
                operation_id=operation.id,
                metadata=operation.metadata,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log_upload_failed(
                sync_logger(), operation.id, operation.kind.value, str(e) or type(e).__name__
            )
            return False

        if result.success:
            log_upload_success(
                sync_logger(), operation.id, operation.kind.value, result.remote_id
            )
            return True

        log_upload_failed(
            sync_logger(), operation.id, operation.kind.value, result.error or "Unknown error"
        )
        return False

    def _record_sync_completed(self) -> None:
        now = self._clock()
        self._last_sync_completed_at = now
        if self._store is None:
            return
        try:
            self._store.save_last_sync_date(now)
        except (OSError, ValueError, TypeError) as e:
            logger.warning("Failed to persist last sync date: %s", e)

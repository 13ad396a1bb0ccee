"""Sync agent assembling storage, connectivity, queue and uploader."""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable

from sidekick.config import Settings
from sidekick.monitor import ConnectivityMonitor
from sidekick.storage import CaptureFileStore, SettingsStore
from sidekick.sync import (
    HttpUploader,
    OperationKind,
    OperationQueue,
    SQLiteOperationQueue,
    SyncCoordinator,
    SyncOperation,
    Uploader,
)

logger = logging.getLogger(__name__)


class SyncAgent:
    """Top-level assembly for the offline sync subsystem.

    Builds every component from Settings and owns their lifecycle. This is
    the entry point the CLI and capture flows use; nothing here is a
    process-wide singleton. Components can be passed in to replace the
    defaults (tests use this to inject fakes).

    Example:
        agent = SyncAgent(settings)
        await agent.start()
        agent.capture_photo("CLM-1001", jpeg_bytes)
        await agent.stop()
    """

    def __init__(
        self,
        config: Settings,
        *,
        uploader: Uploader | None = None,
        monitor: ConnectivityMonitor | None = None,
        queue: OperationQueue | None = None,
        store: SettingsStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the sync agent.

        Args:
            config: Settings instance with all configuration
            uploader: Remote uploader (default: HttpUploader for server_url)
            monitor: Connectivity monitor (default: starts online)
            queue: Operation queue (default: SQLite if durable_queue, else memory)
            store: Settings store for the last sync time
            clock: Time source for the coordinator
        """
        self.config = config

        data_path = config.data_path
        data_path.mkdir(parents=True, exist_ok=True)

        self._files = CaptureFileStore(data_path)
        self._store = store or SettingsStore(config.settings_store_path)
        self._monitor = monitor or ConnectivityMonitor()
        self._owns_uploader = uploader is None
        self._uploader = uploader or HttpUploader(
            server_url=config.server_url,
            api_token=config.api_token,
            max_retries=config.upload_max_retries,
            timeout=config.upload_timeout,
        )
        if queue is None:
            queue = (
                SQLiteOperationQueue(config.queue_db_path)
                if config.durable_queue
                else OperationQueue()
            )
        self._queue = queue

        self._coordinator = SyncCoordinator(
            queue=self._queue,
            uploader=self._uploader,
            monitor=self._monitor,
            store=self._store,
            clock=clock,
        )

        self._running = False
        self._stopped = False
        self._probe_task: asyncio.Task | None = None

    @property
    def coordinator(self) -> SyncCoordinator:
        return self._coordinator

    @property
    def monitor(self) -> ConnectivityMonitor:
        return self._monitor

    @property
    def files(self) -> CaptureFileStore:
        return self._files

    async def start(self, probe: bool = True) -> None:
        """Start the coordinator and, optionally, the reachability probe.

        Args:
            probe: Poll the server health endpoint to drive connectivity
        """
        if self._running:
            return
        self._running = True

        await self._coordinator.start()

        if probe:
            self._probe_task = asyncio.create_task(
                self._monitor.run_probe(
                    self._uploader.check_server,
                    interval=self.config.probe_interval,
                )
            )

        self._log_start()

    def _log_start(self) -> None:
        logger.info(
            "Sync agent started: data_dir=%s, pending=%d",
            self.config.data_path,
            self._coordinator.pending_count,
        )

    async def stop(self) -> None:
        """Stop the probe, wait for in-flight drains and close resources.

        Also safe to call on an agent that was never started, and more than
        once; only the first call releases resources.
        """
        self._running = False
        if self._stopped:
            return
        self._stopped = True

        self._monitor.stop()
        if self._probe_task and not self._probe_task.done():
            self._probe_task.cancel()
            try:
                await self._probe_task
            except asyncio.CancelledError:
                pass

        await self._coordinator.close()
        pending = self._coordinator.pending_count

        close = getattr(self._uploader, "close", None)
        if self._owns_uploader and close is not None:
            await close()
        self._queue.close()

        logger.info("Sync agent stopped, pending=%d", pending)

    # --- Producers ---

    def capture_photo(self, claim_number: str, data: bytes) -> SyncOperation:
        """Save a photo locally and queue its upload."""
        filepath = self._files.save_photo(claim_number, data)
        return self._coordinator.enqueue(
            OperationKind.UPLOAD_PHOTO,
            data,
            {"claim_number": claim_number, "filename": filepath.name},
        )

    def upload_fnol(self, data: bytes, filename: str) -> SyncOperation:
        """Save an FNOL document locally and queue its upload."""
        filepath = self._files.save_fnol(data, filename)
        return self._coordinator.enqueue(
            OperationKind.UPLOAD_FNOL,
            data,
            {"filename": filepath.name},
        )

    def capture_lidar_scan(self, claim_number: str, data: bytes) -> SyncOperation:
        """Save a LiDAR scan locally and queue its upload."""
        filepath = self._files.save_lidar_scan(claim_number, data)
        return self._coordinator.enqueue(
            OperationKind.UPLOAD_LIDAR_SCAN,
            data,
            {"claim_number": claim_number, "filename": filepath.name},
        )

    def sync_claim(self, claim_number: str, data: bytes | None = None) -> SyncOperation:
        """Queue a claim record sync."""
        return self._coordinator.enqueue(
            OperationKind.SYNC_CLAIM,
            data,
            {"claim_number": claim_number},
        )

    def pending_operations(self) -> list[SyncOperation]:
        """Operations still waiting for upload, oldest first."""
        return self._queue.snapshot()

    async def sync(self) -> bool:
        """Trigger an immediate drain pass."""
        return await self._coordinator.sync()

    async def check_server(self) -> bool:
        """One-off reachability check against the server."""
        return await self._uploader.check_server()

    def get_status(self) -> dict[str, Any]:
        """Get current agent status.

        Returns:
            Dictionary with sync state, connectivity and local storage usage
        """
        usage = self._files.usage()
        return {
            "running": self._running,
            "sync": self._coordinator.status().to_dict(),
            "storage": {
                "photos": usage.photos,
                "fnols": usage.fnols,
                "lidar_scans": usage.lidar_scans,
                "total": usage.total,
            },
            "data_dir": str(self.config.data_path),
        }

"""Tests for the SyncAgent assembly."""

import asyncio

import pytest
from conftest import FIXED_NOW, FakeUploader

from sidekick.engine import SyncAgent
from sidekick.monitor import ConnectivityMonitor
from sidekick.sync import OperationKind, OperationQueue, SQLiteOperationQueue


@pytest.fixture
def offline_agent(settings, uploader):
    return SyncAgent(
        settings,
        uploader=uploader,
        monitor=ConnectivityMonitor(is_connected=False),
        clock=lambda: FIXED_NOW,
    )


class TestProducers:
    """Capture flows save locally, then queue the upload."""

    @pytest.mark.asyncio
    async def test_capture_photo(self, offline_agent):
        operation = offline_agent.capture_photo("CLM-1001", b"jpeg")

        saved = list(offline_agent.files.photos_dir.iterdir())
        assert len(saved) == 1
        assert saved[0].read_bytes() == b"jpeg"
        assert operation.kind is OperationKind.UPLOAD_PHOTO
        assert operation.metadata == {"claim_number": "CLM-1001", "filename": saved[0].name}

        await offline_agent.stop()

    @pytest.mark.asyncio
    async def test_capture_photo_with_slashed_claim_number(self, offline_agent):
        operation = offline_agent.capture_photo("CLM/2025/001", b"jpeg")

        assert operation.metadata["claim_number"] == "CLM/2025/001"
        assert (offline_agent.files.photos_dir / operation.metadata["filename"]).exists()
        assert len(offline_agent.pending_operations()) == 1

        await offline_agent.stop()

    @pytest.mark.asyncio
    async def test_upload_fnol(self, offline_agent):
        operation = offline_agent.upload_fnol(b"%PDF", "notice.pdf")

        assert (offline_agent.files.fnol_dir / "notice.pdf").read_bytes() == b"%PDF"
        assert operation.metadata == {"filename": "notice.pdf"}

        await offline_agent.stop()

    @pytest.mark.asyncio
    async def test_lidar_and_claim_sync(self, offline_agent):
        scan = offline_agent.capture_lidar_scan("CLM-7", b"points")
        claim = offline_agent.sync_claim("CLM-7", b'{"status": "open"}')

        pending = offline_agent.pending_operations()
        assert [op.id for op in pending] == [scan.id, claim.id]
        assert pending[1].kind is OperationKind.SYNC_CLAIM
        assert pending[1].metadata == {"claim_number": "CLM-7"}

        await offline_agent.stop()


class TestLifecycle:
    def test_default_queue_is_durable(self, settings):
        agent = SyncAgent(settings, uploader=FakeUploader())

        assert isinstance(agent._queue, SQLiteOperationQueue)
        assert settings.queue_db_path.exists()

        asyncio.run(agent.stop())

    def test_memory_queue_when_not_durable(self, tmp_path):
        from sidekick.config import Settings

        settings = Settings(data_dir=tmp_path, durable_queue=False)
        agent = SyncAgent(settings, uploader=FakeUploader())

        assert type(agent._queue) is OperationQueue

        asyncio.run(agent.stop())

    @pytest.mark.asyncio
    async def test_stop_without_start(self, offline_agent):
        await offline_agent.stop()

        assert offline_agent.get_status()["running"] is False

    @pytest.mark.asyncio
    async def test_stop_twice_and_status_after_stop(self, offline_agent):
        offline_agent.capture_photo("CLM-4", b"jpeg")
        await offline_agent.start(probe=False)

        await offline_agent.stop()
        await offline_agent.stop()

        status = offline_agent.get_status()
        assert status["sync"]["pending_count"] == 1
        assert offline_agent.coordinator.pending_count == 1

    @pytest.mark.asyncio
    async def test_reconnect_drains_through_agent(self, offline_agent, uploader):
        await offline_agent.start(probe=False)
        offline_agent.capture_photo("CLM-1", b"one")
        offline_agent.capture_photo("CLM-1", b"two")
        assert uploader.calls == []

        offline_agent.monitor.update(True)
        await offline_agent.coordinator.join()

        assert uploader.uploaded_payloads == [b"one", b"two"]
        status = offline_agent.get_status()
        assert status["sync"]["pending_count"] == 0
        assert status["sync"]["last_sync_completed_at"] == FIXED_NOW.isoformat()

        await offline_agent.stop()

    @pytest.mark.asyncio
    async def test_probe_brings_agent_online(self, settings, uploader):
        agent = SyncAgent(
            settings,
            uploader=uploader,
            monitor=ConnectivityMonitor(is_connected=False),
        )
        agent.capture_photo("CLM-2", b"queued-offline")

        await agent.start()
        for _ in range(100):
            if agent.coordinator.pending_count == 0 and not agent.coordinator.is_syncing:
                break
            await asyncio.sleep(0.01)

        assert uploader.uploaded_payloads == [b"queued-offline"]

        await agent.stop()

    @pytest.mark.asyncio
    async def test_get_status(self, offline_agent, settings):
        offline_agent.capture_photo("CLM-3", b"x" * 5)

        status = offline_agent.get_status()

        assert status["data_dir"] == str(settings.data_path)
        assert status["storage"]["photos"] == 5
        assert status["sync"]["pending_count"] == 1
        assert status["sync"]["is_connected"] is False

        await offline_agent.stop()

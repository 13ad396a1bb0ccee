"""Integration tests for the sync agent.

These exercise the durable queue, the coordinator and the HTTP uploader
together, with the claims server replaced by an httpx.MockTransport.
"""

import httpx
import pytest
from conftest import FIXED_NOW, FakeUploader

from sidekick.engine import SyncAgent
from sidekick.monitor import ConnectivityMonitor
from sidekick.storage import SettingsStore
from sidekick.sync import HttpUploader


class ClaimsServer:
    """Minimal stand-in for the claims API."""

    def __init__(self) -> None:
        self.received: list[httpx.Request] = []
        self.available = True

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/health/ready":
            return httpx.Response(200 if self.available else 503)
        if not self.available:
            return httpx.Response(503)
        self.received.append(request)
        return httpx.Response(201, json={"id": f"srv-{len(self.received)}"})


@pytest.fixture
def server():
    return ClaimsServer()


def _http_uploader(server: ClaimsServer) -> HttpUploader:
    return HttpUploader(
        "http://claims.test",
        max_retries=1,
        retry_backoff=0,
        transport=httpx.MockTransport(server.handler),
    )


class TestOfflineCaptureFlow:
    @pytest.mark.asyncio
    async def test_queue_survives_restart_and_drains_on_reconnect(self, settings, server):
        # First session: adjuster captures while offline, then the app exits
        first = SyncAgent(
            settings,
            uploader=FakeUploader(),
            monitor=ConnectivityMonitor(is_connected=False),
        )
        await first.start(probe=False)
        fnol = first.upload_fnol(b"%PDF-fnol", "CLM-1001-fnol.pdf")
        photo = first.capture_photo("CLM-1001", b"jpeg-roof")
        await first.stop()

        # Second session: same data dir, real HTTP path
        uploader = _http_uploader(server)
        second = SyncAgent(
            settings,
            uploader=uploader,
            monitor=ConnectivityMonitor(is_connected=False),
            clock=lambda: FIXED_NOW,
        )
        await second.start(probe=False)
        assert [op.id for op in second.pending_operations()] == [fnol.id, photo.id]

        second.monitor.update(True)
        await second.coordinator.join()

        paths = [request.url.path for request in server.received]
        assert paths == ["/api/fnol/", "/api/photos/"]
        keys = [request.headers["Idempotency-Key"] for request in server.received]
        assert keys == [fnol.id, photo.id]
        assert second.pending_operations() == []

        await second.stop()
        await uploader.close()

        stored = SettingsStore(settings.settings_store_path).load_last_sync_date()
        assert stored == FIXED_NOW

    @pytest.mark.asyncio
    async def test_server_outage_keeps_operations_queued(self, settings, server):
        server.available = False
        uploader = _http_uploader(server)
        agent = SyncAgent(settings, uploader=uploader, clock=lambda: FIXED_NOW)
        await agent.start(probe=False)

        agent.sync_claim("CLM-55", b'{"status": "inspected"}')
        await agent.coordinator.join()

        assert len(agent.pending_operations()) == 1
        assert agent.coordinator.last_sync_completed_at == FIXED_NOW

        server.available = True
        assert await agent.sync() is True

        assert agent.pending_operations() == []
        assert [r.url.path for r in server.received] == ["/api/claims/sync"]

        await agent.stop()
        await uploader.close()

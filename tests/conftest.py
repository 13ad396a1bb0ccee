"""Shared fixtures for sync agent tests."""

import asyncio
from datetime import datetime, timezone
from typing import Any

import pytest

from sidekick.config import Settings
from sidekick.monitor import ConnectivityMonitor
from sidekick.storage import SettingsStore
from sidekick.sync import OperationKind, OperationQueue, SyncCoordinator, UploadResult

FIXED_NOW = datetime(2025, 10, 22, 14, 30, tzinfo=timezone.utc)


class FakeUploader:
    """In-memory uploader recording every call.

    Fails any payload in ``fail_on`` (or everything when ``fail_all`` is set),
    raises for payloads in ``raise_on``, and blocks on ``gate`` when one is set.
    """

    def __init__(self, fail_on: set[bytes] | None = None, reachable: bool = True) -> None:
        self.calls: list[dict[str, Any]] = []
        self.fail_on = set(fail_on or ())
        self.raise_on: set[bytes] = set()
        self.fail_all = False
        self.reachable = reachable
        self.gate: asyncio.Event | None = None

    async def upload(
        self,
        kind: OperationKind,
        payload: bytes | None,
        *,
        operation_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> UploadResult:
        self.calls.append(
            {
                "kind": kind,
                "payload": payload,
                "operation_id": operation_id,
                "metadata": metadata,
            }
        )
        if self.gate is not None:
            await self.gate.wait()
        if payload in self.raise_on:
            raise RuntimeError("corrupt payload")
        if self.fail_all or payload in self.fail_on:
            return UploadResult(success=False, error="Server error: 503", attempts=1)
        return UploadResult(success=True, remote_id=f"remote-{len(self.calls)}", attempts=1)

    async def check_server(self) -> bool:
        return self.reachable

    @property
    def uploaded_payloads(self) -> list[bytes | None]:
        return [call["payload"] for call in self.calls]


@pytest.fixture
def uploader():
    return FakeUploader()


@pytest.fixture
def offline_monitor():
    return ConnectivityMonitor(is_connected=False)


@pytest.fixture
def queue():
    return OperationQueue()


@pytest.fixture
def settings_store(tmp_path):
    return SettingsStore(tmp_path / "settings.json")


@pytest.fixture
def coordinator(queue, uploader, offline_monitor, settings_store):
    """Coordinator that starts offline and is not subscribed to the monitor."""
    return SyncCoordinator(
        queue=queue,
        uploader=uploader,
        monitor=offline_monitor,
        store=settings_store,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path / "data", durable_queue=True, probe_interval=0.01)

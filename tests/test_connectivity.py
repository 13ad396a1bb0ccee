"""Tests for the connectivity monitor."""

import asyncio

import pytest

from sidekick.monitor import ConnectionType, ConnectivityMonitor


class TestConnectivityMonitor:
    """Edge-triggered notifications and state tracking."""

    def test_defaults_to_connected(self):
        status = ConnectivityMonitor().current_status()

        assert status.is_connected is True
        assert status.connection_type is ConnectionType.UNKNOWN

    def test_notifies_only_on_edges(self):
        monitor = ConnectivityMonitor()
        seen = []
        monitor.on_change(seen.append)

        monitor.update(True, ConnectionType.WIFI)
        monitor.update(False)
        monitor.update(False)
        monitor.update(True, ConnectionType.CELLULAR)

        assert seen == [False, True]

    def test_every_update_records_connection_type(self):
        monitor = ConnectivityMonitor()

        monitor.update(True, ConnectionType.ETHERNET)

        assert monitor.connection_type is ConnectionType.ETHERNET

    def test_failing_callback_does_not_stop_others(self):
        monitor = ConnectivityMonitor()
        seen = []

        def broken(is_connected):
            raise RuntimeError("observer crashed")

        monitor.on_change(broken)
        monitor.on_change(seen.append)
        monitor.update(False)

        assert seen == [False]
        assert monitor.is_connected is False

    def test_remove_callback(self):
        monitor = ConnectivityMonitor()
        seen = []
        monitor.on_change(seen.append)
        monitor.remove_callback(seen.append)

        monitor.update(False)

        assert seen == []

    @pytest.mark.asyncio
    async def test_probe_drives_state(self):
        monitor = ConnectivityMonitor()
        results = iter([False, True])
        seen = []
        monitor.on_change(seen.append)

        async def check():
            try:
                return next(results)
            except StopIteration:
                monitor.stop()
                return True

        await asyncio.wait_for(monitor.run_probe(check, interval=0), timeout=2)

        assert seen == [False, True]
        assert monitor.is_connected is True

    @pytest.mark.asyncio
    async def test_probe_error_counts_as_offline(self):
        monitor = ConnectivityMonitor()

        async def check():
            monitor.stop()
            raise OSError("network unreachable")

        await asyncio.wait_for(monitor.run_probe(check, interval=0), timeout=2)

        assert monitor.is_connected is False

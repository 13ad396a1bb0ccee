"""Network reachability tracking for the sync coordinator."""

import asyncio
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

from sidekick.logging import connectivity_logger, log_connectivity_change

logger = logging.getLogger(__name__)


class ConnectionType(str, Enum):
    """Interface the current network path uses."""

    WIFI = "wifi"
    CELLULAR = "cellular"
    ETHERNET = "ethernet"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ConnectivityStatus:
    """Latest known connectivity state."""

    is_connected: bool
    connection_type: ConnectionType


class ConnectivityMonitor:
    """Tracks whether the device is online and notifies on edges.

    Every path update records both fields, but observers are only called
    when ``is_connected`` flips. The monitor starts out connected so the
    first launch is not held back waiting for a signal.

    Example:
        monitor = ConnectivityMonitor()
        monitor.on_change(lambda online: print("online" if online else "offline"))
        monitor.update(False)
        monitor.update(True, ConnectionType.WIFI)
    """

    def __init__(
        self,
        is_connected: bool = True,
        connection_type: ConnectionType = ConnectionType.UNKNOWN,
    ) -> None:
        self._is_connected = is_connected
        self._connection_type = connection_type
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[bool], None]] = []
        self._running = False

    @property
    def is_connected(self) -> bool:
        with self._lock:
            return self._is_connected

    @property
    def connection_type(self) -> ConnectionType:
        with self._lock:
            return self._connection_type

    def current_status(self) -> ConnectivityStatus:
        """Return the latest known state without blocking on the network."""
        with self._lock:
            return ConnectivityStatus(self._is_connected, self._connection_type)

    def on_change(self, callback: Callable[[bool], None]) -> None:
        """Register a callback for online/offline transitions.

        Args:
            callback: Called with the new ``is_connected`` value
        """
        with self._lock:
            self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[bool], None]) -> None:
        """Unregister a previously registered callback."""
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def update(
        self,
        is_connected: bool,
        connection_type: ConnectionType = ConnectionType.UNKNOWN,
    ) -> None:
        """Record a path update from the underlying network signal.

        Args:
            is_connected: Whether the path is currently usable
            connection_type: Interface type the path uses
        """
        with self._lock:
            changed = self._is_connected != is_connected
            self._is_connected = is_connected
            self._connection_type = connection_type
            callbacks = list(self._callbacks) if changed else []

        if not changed:
            return

        log_connectivity_change(connectivity_logger(), is_connected, connection_type.value)
        for callback in callbacks:
            try:
                callback(is_connected)
            except Exception as e:
                logger.error("Connectivity callback failed: %s", e, exc_info=True)

    async def run_probe(
        self,
        check: Callable[[], Awaitable[bool]],
        interval: float = 15.0,
        connection_type: ConnectionType = ConnectionType.UNKNOWN,
    ) -> None:
        """Derive the path signal from a periodic health check.

        Runs until stop() is called or the task is cancelled. A check that
        raises counts as offline.

        Args:
            check: Awaitable returning True when the server is reachable
            interval: Seconds between checks
            connection_type: Type reported alongside probe results
        """
        self._running = True
        while self._running:
            try:
                reachable = await check()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.debug("Reachability probe failed: %s", e)
                reachable = False

            self.update(bool(reachable), connection_type)
            await asyncio.sleep(interval)

    def stop(self) -> None:
        """Stop a running probe loop after its current iteration."""
        self._running = False

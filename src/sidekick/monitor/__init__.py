"""Monitor module for network connectivity tracking."""

from sidekick.monitor.connectivity import (
    ConnectionType,
    ConnectivityMonitor,
    ConnectivityStatus,
)

__all__ = ["ConnectionType", "ConnectivityMonitor", "ConnectivityStatus"]

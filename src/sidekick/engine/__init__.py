"""Engine module for sync agent assembly."""

from sidekick.engine.agent import SyncAgent

__all__ = ["SyncAgent"]

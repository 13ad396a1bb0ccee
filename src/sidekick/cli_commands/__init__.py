"""CLI command modules for the Sidekick sync agent."""

from sidekick.cli_commands.config import config_app
from sidekick.cli_commands.queue import queue_app
from sidekick.cli_commands.status import run_command, status_command, sync_command

__all__ = ["config_app", "queue_app", "run_command", "status_command", "sync_command"]

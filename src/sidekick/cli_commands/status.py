"""Status, sync and run commands for the Sidekick CLI."""

import asyncio
import json
import os
from datetime import datetime, timezone
from pathlib import Path

import typer

from sidekick.config import get_settings
from sidekick.engine import SyncAgent


def _pid_file() -> Path:
    return get_settings().data_path / "agent.pid"


def _get_running_pid() -> int | None:
    """Get the PID of the running agent, if any."""
    pid_file = _pid_file()
    if not pid_file.exists():
        return None

    try:
        pid = int(pid_file.read_text().strip())
        # Check if process exists
        os.kill(pid, 0)
        return pid
    except (ValueError, OSError):
        # Invalid PID or process doesn't exist
        return None


def _format_time_ago(timestamp: datetime | None) -> str:
    """Format a timestamp as 'X minutes ago' style string."""
    if timestamp is None:
        return "Never"

    now = datetime.now(timezone.utc)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    diff = now - timestamp

    seconds = max(int(diff.total_seconds()), 0)
    if seconds < 60:
        return f"{seconds} seconds ago"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    days = hours // 24
    return f"{days} day{'s' if days != 1 else ''} ago"


def status_command(
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Show sync status.

    Displays whether the agent is running, the number of pending
    operations and when the last sync completed.
    """
    pid = _get_running_pid()

    agent = SyncAgent(get_settings())
    try:
        status = agent.coordinator.status()
        usage = agent.files.usage()
    finally:
        asyncio.run(agent.stop())

    status_data = {
        "running": pid is not None,
        "pid": pid,
        "pending_count": status.pending_count,
        "last_sync_completed_at": (
            status.last_sync_completed_at.isoformat()
            if status.last_sync_completed_at
            else None
        ),
        "storage_bytes": usage.total,
    }

    if output_json:
        typer.echo(json.dumps(status_data))
        return

    typer.echo("")
    typer.echo("Sidekick Sync Status")
    typer.echo("--------------------")
    if pid is not None:
        typer.echo(f"Agent: Running (PID: {pid})")
    else:
        typer.echo("Agent: Not running")
    typer.echo(f"Queue: {status.pending_count} pending operations")
    typer.echo(f"Last sync: {_format_time_ago(status.last_sync_completed_at)}")
    typer.echo(f"Local storage: {usage.format_size(usage.total)}")
    typer.echo("")


async def _sync_once(agent: SyncAgent) -> dict:
    try:
        online = await agent.check_server()
        agent.monitor.update(online)
        await agent.start(probe=False)
        ran = await agent.sync()
        status = agent.coordinator.status()
    finally:
        await agent.stop()

    return {
        "online": online,
        "ran": ran,
        "pending_count": status.pending_count,
        "last_sync_completed_at": (
            status.last_sync_completed_at.isoformat()
            if status.last_sync_completed_at
            else None
        ),
    }


def sync_command(
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Run one drain pass against the server now."""
    result = asyncio.run(_sync_once(SyncAgent(get_settings())))
    online = result["online"]

    if output_json:
        typer.echo(json.dumps(result))
    elif not online:
        typer.echo("Server unreachable; operations stay queued.")
    elif not result["ran"]:
        typer.echo("A sync is already in progress.")
    else:
        typer.echo(f"Sync complete. {result['pending_count']} operations still pending.")

    if not online:
        raise typer.Exit(1)


async def _run_forever(agent: SyncAgent) -> None:
    await agent.start()
    try:
        await asyncio.Event().wait()
    finally:
        await agent.stop()


def run_command() -> None:
    """Run the sync agent in the foreground.

    Probes the server, replays queued operations whenever connectivity
    returns, and keeps running until Ctrl+C.
    Operations added with `sidekick queue add` from another process are
    picked up on the next reconnect or restart.
    """
    existing_pid = _get_running_pid()
    if existing_pid:
        typer.echo(f"Agent already running (PID: {existing_pid}).")
        raise typer.Exit(1)

    settings = get_settings()
    pid_file = _pid_file()
    pid_file.parent.mkdir(parents=True, exist_ok=True)
    pid_file.write_text(str(os.getpid()))

    typer.echo(f"Starting Sidekick sync agent (server: {settings.server_url}). Press Ctrl+C to stop.")
    try:
        asyncio.run(_run_forever(SyncAgent(settings)))
    except KeyboardInterrupt:
        typer.echo("\nStopping Sidekick agent...")
    finally:
        pid_file.unlink(missing_ok=True)

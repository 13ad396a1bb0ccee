"""Queue management CLI commands."""

import asyncio
import json
from pathlib import Path

import typer

from sidekick.config import get_settings
from sidekick.engine import SyncAgent
from sidekick.sync import OperationKind

queue_app = typer.Typer(
    name="queue",
    help="Offline queue management - add and list pending operations.",
    no_args_is_help=True,
)

CLAIM_KINDS = {
    OperationKind.UPLOAD_PHOTO,
    OperationKind.UPLOAD_LIDAR_SCAN,
    OperationKind.SYNC_CLAIM,
}


def _output(data: dict | list, as_json: bool, human_lines: list[str]) -> None:
    """Output data as JSON or human-readable format."""
    if as_json:
        typer.echo(json.dumps(data))
    else:
        for line in human_lines:
            typer.echo(line)


@queue_app.command()
def add(
    kind: OperationKind = typer.Argument(..., help="Operation kind"),
    file: Path = typer.Argument(
        None,
        exists=True,
        dir_okay=False,
        readable=True,
        help="File to upload (optional for sync_claim)",
    ),
    claim: str = typer.Option(
        None,
        "--claim",
        "-c",
        help="Claim number (required for photos, LiDAR scans and claim sync)",
    ),
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Queue a file for upload.

    The file is copied into local storage and replicated on the next sync.
    The row is written from this process, so an agent already running under
    `sidekick run` uploads it on its next drain pass (reconnect or restart),
    not immediately. Use `sidekick sync` to upload right away.
    """
    if kind in CLAIM_KINDS and not claim:
        _output(
            {"status": "error", "message": "--claim is required"},
            output_json,
            [f"--claim is required for {kind.value}"],
        )
        raise typer.Exit(1)

    if file is None and kind is not OperationKind.SYNC_CLAIM:
        _output(
            {"status": "error", "message": "file is required"},
            output_json,
            [f"A file is required for {kind.value}"],
        )
        raise typer.Exit(1)

    data = file.read_bytes() if file is not None else None
    agent = SyncAgent(get_settings())
    try:
        if kind is OperationKind.UPLOAD_PHOTO:
            operation = agent.capture_photo(claim, data)
        elif kind is OperationKind.UPLOAD_LIDAR_SCAN:
            operation = agent.capture_lidar_scan(claim, data)
        elif kind is OperationKind.UPLOAD_FNOL:
            operation = agent.upload_fnol(data, file.name)
        else:
            operation = agent.sync_claim(claim, data)
        pending = agent.coordinator.pending_count
    finally:
        asyncio.run(agent.stop())

    _output(
        {
            "status": "queued",
            "operation_id": operation.id,
            "kind": operation.kind.value,
            "pending": pending,
        },
        output_json,
        [
            f"Queued {operation.kind.value} ({operation.id}). {pending} pending.",
            "Run 'sidekick sync' to upload now.",
        ],
    )


@queue_app.command(name="list")
def list_operations(
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """List pending operations, oldest first."""
    agent = SyncAgent(get_settings())
    try:
        operations = agent.pending_operations()
    finally:
        asyncio.run(agent.stop())

    rows = [
        {
            "id": op.id,
            "kind": op.kind.value,
            "payload_size": op.payload_size,
            "enqueued_at": op.enqueued_at.isoformat(),
            "claim_number": op.metadata.get("claim_number"),
        }
        for op in operations
    ]

    if output_json:
        typer.echo(json.dumps(rows))
        return

    if not rows:
        typer.echo("Queue is empty.")
        return

    typer.echo("")
    typer.echo(f"{len(rows)} pending operation{'s' if len(rows) != 1 else ''}:")
    for row in rows:
        claim = f" claim={row['claim_number']}" if row["claim_number"] else ""
        typer.echo(
            f"  {row['enqueued_at']}  {row['kind']:<18} {row['payload_size']:>10} bytes{claim}"
        )
    typer.echo("")

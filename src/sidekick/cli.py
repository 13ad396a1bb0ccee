"""Sidekick CLI - Command-line interface for the offline sync agent."""

import typer

from sidekick import __version__
from sidekick.cli_commands import (
    config_app,
    queue_app,
    run_command,
    status_command,
    sync_command,
)
from sidekick.config import get_settings
from sidekick.logging import setup_logging

app = typer.Typer(
    name="sidekick",
    help="Claims Sidekick sync agent - offline queue for field inspection uploads.",
    no_args_is_help=True,
)

# Register subcommands
app.add_typer(queue_app, name="queue")
app.add_typer(config_app, name="config")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"sidekick-agent {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Claims Sidekick sync agent."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file, device_id=settings.device_id)


app.command(name="status")(status_command)
app.command(name="sync")(sync_command)
app.command(name="run")(run_command)


if __name__ == "__main__":
    app()

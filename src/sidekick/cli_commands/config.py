"""Configuration management CLI commands."""

import json

import typer

from sidekick.config import get_settings

config_app = typer.Typer(
    name="config",
    help="Configuration management - view settings.",
    no_args_is_help=True,
)

VALID_KEYS = {
    "server_url",
    "api_token",
    "upload_timeout",
    "upload_max_retries",
    "probe_interval",
    "data_dir",
    "durable_queue",
    "log_level",
    "log_file",
    "device_id",
}


@config_app.command()
def show(
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Show current configuration."""
    settings = get_settings()

    config_data = {
        "server_url": settings.server_url,
        "api_token_set": settings.api_token is not None,
        "upload_timeout": settings.upload_timeout,
        "upload_max_retries": settings.upload_max_retries,
        "probe_interval": settings.probe_interval,
        "data_dir": str(settings.data_path),
        "durable_queue": settings.durable_queue,
        "log_level": settings.log_level,
        "log_file": str(settings.log_file) if settings.log_file else None,
        "device_id": settings.device_id,
    }

    if output_json:
        typer.echo(json.dumps(config_data, indent=2))
    else:
        typer.echo("")
        typer.echo("Sidekick Configuration")
        typer.echo("----------------------")
        typer.echo(f"Server URL: {settings.server_url}")
        typer.echo(f"API token: {'set' if settings.api_token else 'not set'}")
        typer.echo(f"Upload timeout: {settings.upload_timeout}s")
        typer.echo(f"Upload retries: {settings.upload_max_retries}")
        typer.echo(f"Probe interval: {settings.probe_interval}s")
        typer.echo(f"Data directory: {settings.data_path}")
        typer.echo(f"Durable queue: {'yes' if settings.durable_queue else 'no'}")
        typer.echo(f"Log level: {settings.log_level}")
        typer.echo(f"Device ID: {settings.device_id or 'not set'}")
        typer.echo("")
        typer.echo("Set values using environment variables with SIDEKICK_ prefix")
        typer.echo("Example: SIDEKICK_SERVER_URL=https://claims.example.com")


@config_app.command(name="set")
def set_config(
    key: str = typer.Argument(..., help="Configuration key to set"),
    value: str = typer.Argument(..., help="Value to set"),
) -> None:
    """Explain how to set a configuration value.

    Configuration is environment-based. This command prints what to add to
    your environment or .env file.
    """
    if key not in VALID_KEYS:
        typer.echo(f"Unknown key: {key}")
        typer.echo(f"Valid keys: {', '.join(sorted(VALID_KEYS))}")
        raise typer.Exit(1)

    env_key = f"SIDEKICK_{key.upper()}"
    typer.echo(f"To set {key}={value}, add to your environment:")
    typer.echo(f"  export {env_key}={value}")
    typer.echo("")
    typer.echo("Or add to .env in the working directory:")
    typer.echo(f"  {env_key}={value}")

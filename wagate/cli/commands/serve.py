"""Run the HTTP gateway."""

from dataclasses import replace
from pathlib import Path

import typer
import uvicorn
from rich.console import Console

from wagate.cli.output import format_error
from wagate.server.app import create_app
from wagate.server.config import ServerConfig, load_config_from_env, load_config_from_file

console = Console()


def load_serve_config(config_path: str | None, host: str | None, port: int | None) -> ServerConfig:
    """Environment, then the optional YAML file, then command-line flags."""
    config = load_config_from_file(Path(config_path)) if config_path else load_config_from_env()
    overrides = {}
    if host:
        overrides["host"] = host
    if port:
        overrides["port"] = port
    return replace(config, **overrides) if overrides else config


def serve_command(config_path: str | None, host: str | None, port: int | None) -> None:
    try:
        config = load_serve_config(config_path, host, port)
    except (OSError, ValueError) as e:
        format_error(console, f"Invalid configuration: {e}")
        raise typer.Exit(code=1)

    console.print(f"[bold]wagate[/bold] listening on http://{config.host}:{config.port}")
    console.print(f"[cyan]Sessions:[/cyan] {config.sessions_dir}")
    console.print(f"[cyan]Bridge:[/cyan]   {config.bridge.url}")
    uvicorn.run(create_app(config), host=config.host, port=config.port)

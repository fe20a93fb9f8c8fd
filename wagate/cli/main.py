"""Main CLI entry point for wagate."""

import typer
from rich.console import Console

from wagate.cli.commands.purge import purge_command
from wagate.cli.commands.serve import serve_command
from wagate.cli.commands.sessions import sessions_command

app = typer.Typer(
    name="wagate",
    help="wagate - run many messaging-account sessions behind one HTTP service",
    no_args_is_help=True,
    add_completion=False,
)
console = Console()


@app.command("serve")
def serve(
    config: str = typer.Option(None, "-c", "--config", help="YAML config file"),
    host: str = typer.Option(None, "--host", help="Bind address"),
    port: int = typer.Option(None, "-p", "--port", help="Bind port"),
) -> None:
    """Start the HTTP gateway and recover stored sessions."""
    serve_command(config, host, port)


@app.command("sessions")
def sessions(
    sessions_dir: str = typer.Option(None, "-d", "--sessions-dir", help="Sessions root"),
    json_flag: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List stored sessions."""
    sessions_command(sessions_dir, json_flag)


@app.command("purge")
def purge(
    session_id: str = typer.Argument(..., help="Session ID"),
    sessions_dir: str = typer.Option(None, "-d", "--sessions-dir", help="Sessions root"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation"),
    json_flag: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Erase one session's stored credentials."""
    purge_command(session_id, sessions_dir, yes, json_flag)


def main() -> None:
    """Entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled[/yellow]")
        raise typer.Exit(130)

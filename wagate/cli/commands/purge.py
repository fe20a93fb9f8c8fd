"""Erase the stored credentials of one session while the server is stopped."""

import shutil

import typer
from rich.console import Console

from wagate.cli.output import format_error, format_success, format_warning, json_output
from wagate.cli.utils import resolve_sessions_dir
from wagate.sessions.errors import ValidationError
from wagate.sessions.validation import validate_session_id

console = Console()


def purge_command(session_id: str, sessions_dir: str | None, yes: bool, json_flag: bool) -> None:
    """Delete ``<sessions_dir>/<session_id>`` so it is not recovered again.

    A running server keeps its own client on that directory; use
    POST /api/disconnect there instead.
    """
    try:
        session_id = validate_session_id(session_id)
    except ValidationError as e:
        format_error(console, e.message)
        raise typer.Exit(code=2)

    try:
        root = resolve_sessions_dir(sessions_dir)
    except ValueError as e:
        format_error(console, str(e))
        raise typer.Exit(code=1)

    path = root / session_id
    if not path.is_dir():
        format_error(
            console, f"No stored session {session_id!r} in {root}",
            hint="Run `wagate sessions` to see stored session ids",
        )
        raise typer.Exit(code=1)

    if not yes:
        format_warning(console, f"Will erase credentials at {path}; the account must be paired again")
        if not typer.confirm("Continue?"):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(code=0)

    try:
        shutil.rmtree(path)
    except OSError as e:
        format_error(console, f"Purge failed: {e}")
        raise typer.Exit(code=1)

    if json_flag:
        json_output(console, {"status": "purged", "session_id": session_id, "path": path})
        return
    format_success(console, f"Purged session {session_id}")

"""List credential directories stored under the sessions root."""

from datetime import datetime, timezone
from pathlib import Path

import typer
from rich.console import Console

from wagate.cli.output import format_error, format_sessions_table, json_output
from wagate.cli.utils import resolve_sessions_dir
from wagate.sessions.validation import is_valid_session_id

console = Console()


def _directory_size(path: Path) -> int:
    return sum(p.stat().st_size for p in path.rglob("*") if p.is_file())


def collect_sessions(sessions_dir: Path) -> list[dict]:
    """Describe every credential directory; these are what recovery replays."""
    if not sessions_dir.is_dir():
        return []
    result = []
    for path in sorted(sessions_dir.iterdir()):
        if not path.is_dir():
            continue
        modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        result.append({
            "session_id": path.name,
            "recoverable": is_valid_session_id(path.name),
            "size_bytes": _directory_size(path),
            "modified_at": modified,
        })
    return result


def sessions_command(sessions_dir: str | None, json_flag: bool) -> None:
    """List sessions that would be recovered on the next server start."""
    try:
        root = resolve_sessions_dir(sessions_dir)
        sessions = collect_sessions(root)
    except (OSError, ValueError) as e:
        format_error(console, f"Failed to list sessions: {e}")
        raise typer.Exit(code=1)

    if json_flag:
        json_output(console, {"sessions_dir": root, "count": len(sessions), "sessions": sessions})
        return

    if not sessions:
        console.print(f"[yellow]No sessions stored in {root}[/yellow]")
        return

    format_sessions_table(console, root, sessions)

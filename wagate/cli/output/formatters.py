"""Rich terminal output formatters."""

from pathlib import Path
from typing import Any, Sequence

from rich.console import Console
from rich.table import Table


def format_success(console: Console, message: str) -> None:
    console.print(f"[green]{message}[/green]")


def format_error(console: Console, message: str, hint: str | None = None) -> None:
    """Display error message in red with optional hint."""
    console.print(f"[red]Error:[/red] {message}")
    if hint:
        console.print(f"[yellow]Hint:[/yellow] {hint}")


def format_warning(console: Console, message: str) -> None:
    console.print(f"[yellow]Warning:[/yellow] {message}")


def format_size(num_bytes: int) -> str:
    size = float(num_bytes)
    for unit in ("B", "KiB", "MiB"):
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GiB"


def format_sessions_table(console: Console, root: Path, sessions: Sequence[dict[str, Any]]) -> None:
    """One row per credential directory, flagging names recovery will skip."""
    table = Table(title=f"Sessions in {root}")
    table.add_column("Session", style="cyan")
    table.add_column("Recoverable")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    for s in sessions:
        table.add_row(
            s["session_id"],
            "[green]yes[/green]" if s["recoverable"] else "[red]no (invalid name)[/red]",
            format_size(s["size_bytes"]),
            s["modified_at"].strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)

"""Shared helpers for CLI commands."""

from pathlib import Path

from wagate.server.config import load_config_from_env


def resolve_sessions_dir(sessions_dir: str | None) -> Path:
    """Use the explicit directory, else the one the server would use."""
    if sessions_dir:
        return Path(sessions_dir)
    return load_config_from_env().sessions_dir

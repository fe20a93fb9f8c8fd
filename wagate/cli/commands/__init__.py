"""CLI commands."""

from . import purge, serve, sessions

__all__ = ["purge", "serve", "sessions"]

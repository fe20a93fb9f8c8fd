"""Terminal and JSON output for CLI commands."""

from .formatters import format_error, format_sessions_table, format_size, format_success, format_warning
from .json_output import json_output

__all__ = [
    "format_error",
    "format_sessions_table",
    "format_size",
    "format_success",
    "format_warning",
    "json_output",
]

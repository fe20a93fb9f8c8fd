"""Input validation for session identifiers and send requests."""
import re
from typing import Optional

from wagate.sessions.errors import ValidationError

MAX_SESSION_ID_LENGTH = 128
_SESSION_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_.-]+$")


def is_valid_session_id(session_id: str) -> bool:
    return (
        bool(session_id)
        and len(session_id) <= MAX_SESSION_ID_LENGTH
        and session_id not in (".", "..")
        and _SESSION_ID_PATTERN.match(session_id) is not None
    )


def validate_session_id(session_id: Optional[str]) -> str:
    """Validate and return a session id. Raises ValidationError if invalid.

    The id names a directory under the sessions root, so it must be a
    single safe path component.
    """
    if session_id is None or not session_id.strip():
        raise ValidationError("session_id is required")
    session_id = session_id.strip()
    if not is_valid_session_id(session_id):
        raise ValidationError(
            "session_id can only contain letters, numbers, underscores, dots, and hyphens "
            f"(max {MAX_SESSION_ID_LENGTH} characters)",
            {"session_id": session_id},
        )
    return session_id


def validate_required(value: Optional[str], name: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{name} is required")
    return value

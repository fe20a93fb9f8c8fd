"""Errors surfaced to callers of the session orchestrator."""
from typing import Any, Optional


class GatewayError(Exception):
    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(GatewayError):
    status_code = 400
    error_code = "INVALID_REQUEST"


class NotFoundError(GatewayError):
    status_code = 404
    error_code = "SESSION_NOT_FOUND"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id!r} not found", {"session_id": session_id})
        self.session_id = session_id


class NotReadyError(GatewayError):
    status_code = 409
    error_code = "SESSION_NOT_READY"

    def __init__(self, session_id: str, state: str) -> None:
        super().__init__(
            f"Session {session_id!r} is not ready (state={state})",
            {"session_id": session_id, "state": state},
        )
        self.session_id = session_id
        self.state = state


class SendFailedError(GatewayError):
    """The messaging client raised TransportError while sending."""
    status_code = 502
    error_code = "TRANSPORT_ERROR"

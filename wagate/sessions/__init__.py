"""Session registry, lifecycle orchestration and admin-info publishing."""
from wagate.sessions.errors import (
    GatewayError, NotFoundError, NotReadyError, SendFailedError, ValidationError,
)
from wagate.sessions.models import (
    AdminIdentity, QrStatus, SessionSnapshot, SessionState, SessionStatus, Trigger,
)
from wagate.sessions.orchestrator import SessionOrchestrator
from wagate.sessions.publisher import AdminInfoPublisher, IdentityPollResult, PollOutcome
from wagate.sessions.qr_cache import QrCache
from wagate.sessions.registry import SessionEntry, SessionRegistry

__all__ = [
    "GatewayError", "NotFoundError", "NotReadyError", "SendFailedError", "ValidationError",
    "AdminIdentity", "QrStatus", "SessionSnapshot", "SessionState", "SessionStatus", "Trigger",
    "SessionOrchestrator",
    "AdminInfoPublisher", "IdentityPollResult", "PollOutcome",
    "QrCache",
    "SessionEntry", "SessionRegistry",
]

"""Session states, transitions and the read-only views handed to callers."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Literal, Optional


class SessionState(Enum):
    """Lifecycle states of one messaging session.

    UNINITIALIZED is never stored: it is what an absent registry entry reports.
    AUTHENTICATED is reported by clients that expose it but the event wiring
    keeps the previous state until READY.
    """
    UNINITIALIZED = "uninitialized"
    CREATING = "creating"
    QR_PENDING = "qr_pending"
    AUTHENTICATED = "authenticated"
    READY = "ready"
    DISCONNECTED = "disconnected"
    AUTH_FAILED = "auth_failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.DISCONNECTED, SessionState.AUTH_FAILED)


class Trigger(Enum):
    QR = "qr"
    READY = "ready"
    AUTH_FAILURE = "auth_failure"
    DISCONNECT = "disconnect"


_TRANSITIONS: dict[tuple[SessionState, Trigger], SessionState] = {
    (SessionState.CREATING, Trigger.QR): SessionState.QR_PENDING,
    (SessionState.CREATING, Trigger.READY): SessionState.READY,
    (SessionState.CREATING, Trigger.AUTH_FAILURE): SessionState.AUTH_FAILED,
    (SessionState.QR_PENDING, Trigger.QR): SessionState.QR_PENDING,
    (SessionState.QR_PENDING, Trigger.READY): SessionState.READY,
    (SessionState.QR_PENDING, Trigger.AUTH_FAILURE): SessionState.AUTH_FAILED,
    (SessionState.AUTHENTICATED, Trigger.READY): SessionState.READY,
    (SessionState.AUTHENTICATED, Trigger.AUTH_FAILURE): SessionState.AUTH_FAILED,
}


def next_state(current: SessionState, trigger: Trigger) -> Optional[SessionState]:
    """Return the state ``trigger`` leads to, or None if it has no edge.

    Disconnect is accepted from every stored state.
    """
    if trigger is Trigger.DISCONNECT:
        return SessionState.DISCONNECTED
    return _TRANSITIONS.get((current, trigger))


@dataclass(frozen=True)
class AdminIdentity:
    account_id: str
    display_name: Optional[str] = None
    battery_level: Optional[int] = None


@dataclass(frozen=True)
class SessionSnapshot:
    """Point-in-time copy of a registry entry, safe to hand out."""
    session_id: str
    state: SessionState
    created_at: datetime
    admin_number: Optional[str] = None
    admin_identity: Optional[AdminIdentity] = None
    has_qr: bool = False


QrStatusValue = Literal["connected", "scan", "initializing", "not_found"]


@dataclass(frozen=True)
class QrStatus:
    status: QrStatusValue
    image: Optional[str] = None


@dataclass(frozen=True)
class SessionStatus:
    ready: bool
    state: SessionState
    identity: Optional[AdminIdentity] = None

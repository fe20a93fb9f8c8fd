"""Single source of truth for session lifecycle state.

Every method is synchronous, so under the asyncio event loop each call is
atomic with respect to other coroutines. Callers pass the ``SessionEntry``
they were working with; operations on an entry that has since been replaced
or removed are rejected, which keeps late events from a torn-down client
from touching its successor.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator, Optional

from wagate.client.base import MessagingClient
from wagate.client.events import ClientEvent
from wagate.sessions.models import (
    AdminIdentity, SessionSnapshot, SessionState, Trigger, next_state,
)
from wagate.sessions.qr_cache import QrCache

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class SessionEntry:
    """Mutable per-session record. Only the registry changes its state."""
    session_id: str
    admin_number: Optional[str] = None
    state: SessionState = SessionState.CREATING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    events: "asyncio.Queue[ClientEvent]" = field(default_factory=asyncio.Queue)
    handle: Optional[MessagingClient] = None
    admin_identity: Optional[AdminIdentity] = None
    task: Optional[asyncio.Task] = None
    publish_task: Optional[asyncio.Task] = None
    recreate_requested: bool = False
    erase_requested: bool = False


class SessionRegistry:
    """Owns session entries, their client handles, QR images and identities."""

    def __init__(self) -> None:
        self._entries: dict[str, SessionEntry] = {}
        self._qr = QrCache()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def get(self, session_id: str) -> Optional[SessionEntry]:
        return self._entries.get(session_id)

    def state_of(self, session_id: str) -> SessionState:
        entry = self._entries.get(session_id)
        return entry.state if entry is not None else SessionState.UNINITIALIZED

    def qr_image(self, session_id: str) -> Optional[str]:
        return self._qr.get(session_id)

    def is_current(self, entry: SessionEntry) -> bool:
        return self._entries.get(entry.session_id) is entry

    def claim(self, session_id: str, admin_number: Optional[str] = None) -> Optional[SessionEntry]:
        """Insert a CREATING entry if none exists; return it to the creator.

        Returns None when the id is already taken. If the existing entry is
        being torn down, the request is remembered so the id is re-created
        once cleanup finishes.
        """
        existing = self._entries.get(session_id)
        if existing is not None:
            if existing.state.is_terminal:
                existing.recreate_requested = True
                if admin_number:
                    existing.admin_number = admin_number
            return None
        entry = SessionEntry(session_id=session_id, admin_number=admin_number)
        self._entries[session_id] = entry
        logger.info("Session claimed session=%s state=%s", session_id, entry.state.value)
        return entry

    def attach_handle(self, entry: SessionEntry, handle: MessagingClient) -> bool:
        if not self.is_current(entry) or entry.state.is_terminal:
            return False
        entry.handle = handle
        return True

    def record_qr(self, entry: SessionEntry, image: str) -> bool:
        """Store a fresh pairing image; moves the session to QR_PENDING."""
        if not self._apply(entry, Trigger.QR):
            return False
        self._qr.put(entry.session_id, image)
        return True

    def mark_ready(self, entry: SessionEntry) -> bool:
        if not self._apply(entry, Trigger.READY):
            return False
        self._qr.clear(entry.session_id)
        return True

    def begin_teardown(self, entry: SessionEntry, trigger: Trigger) -> Optional[SessionState]:
        """Move ``entry`` to DISCONNECTED or AUTH_FAILED and drop its caches.

        An auth failure arriving in a state without an auth-failure edge is
        recorded as a disconnect. Returns the terminal state, or None if the
        entry is stale or another teardown already owns it.
        """
        if not self.is_current(entry) or entry.state.is_terminal:
            return None
        if not self._apply(entry, trigger):
            self._apply(entry, Trigger.DISCONNECT)
        self._qr.clear(entry.session_id)
        entry.admin_identity = None
        return entry.state

    def set_admin_identity(
        self, entry: SessionEntry, handle: MessagingClient, identity: AdminIdentity,
    ) -> bool:
        """Cache ``identity`` once per connection, only while READY on ``handle``."""
        if (
            not self.is_current(entry)
            or entry.state is not SessionState.READY
            or entry.handle is not handle
            or entry.admin_identity is not None
        ):
            return False
        entry.admin_identity = identity
        return True

    def remove(self, entry: SessionEntry) -> bool:
        if not self.is_current(entry):
            return False
        del self._entries[entry.session_id]
        self._qr.clear(entry.session_id)
        entry.handle = None
        entry.admin_identity = None
        logger.info("Session removed session=%s", entry.session_id)
        return True

    def snapshot(self, session_id: str) -> Optional[SessionSnapshot]:
        entry = self._entries.get(session_id)
        if entry is None:
            return None
        return SessionSnapshot(
            session_id=entry.session_id,
            state=entry.state,
            created_at=entry.created_at,
            admin_number=entry.admin_number,
            admin_identity=entry.admin_identity,
            has_qr=session_id in self._qr,
        )

    def snapshots(self) -> list[SessionSnapshot]:
        return [s for s in (self.snapshot(sid) for sid in sorted(self._entries)) if s is not None]

    def _apply(self, entry: SessionEntry, trigger: Trigger) -> bool:
        if not self.is_current(entry):
            logger.debug("Ignoring %s for stale entry session=%s", trigger.value, entry.session_id)
            return False
        target = next_state(entry.state, trigger)
        if target is None:
            logger.warning(
                "Ignoring %s in state %s for session=%s",
                trigger.value, entry.state.value, entry.session_id,
            )
            return False
        if target is not entry.state:
            logger.info(
                "Session transition session=%s %s -> %s",
                entry.session_id, entry.state.value, target.value,
            )
        entry.state = target
        return True

"""Contract between the session orchestrator and a messaging client."""
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from wagate.client.events import EventSink

CHAT_SUFFIX = "@c.us"
_NON_DIGITS = re.compile(r"\D+")


@dataclass(frozen=True)
class ClientInfo:
    """Account metadata reported by a connected client.

    ``account_id`` is empty while the client is still populating it
    shortly after the ready signal.
    """
    account_id: str
    display_name: Optional[str] = None
    battery_level: Optional[int] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.account_id)


class MessagingClient(ABC):
    """One live connection to a messaging account.

    Implementations push lifecycle events through the ``EventSink`` they
    were created with, in the order they happen. ``emit`` must never block.
    """

    def __init__(self, session_id: str, credential_path: Path, emit: EventSink) -> None:
        self.session_id = session_id
        self.credential_path = credential_path
        self._emit = emit

    @property
    @abstractmethod
    def info(self) -> Optional[ClientInfo]:
        """Current account metadata, or None while unknown."""

    @abstractmethod
    async def start(self) -> None:
        """Launch the client. Returns once it is running, not once paired.

        Raises AuthFailureError when stored credentials are rejected up front.
        """

    @abstractmethod
    async def send_message(self, chat_id: str, text: str) -> None:
        """Deliver ``text`` to ``chat_id``. Raises TransportError on failure."""

    @abstractmethod
    async def destroy(self) -> None:
        """Shut the client down. Raises TeardownError on failure."""


class ClientFactory(Protocol):
    def __call__(self, session_id: str, credential_path: Path, emit: EventSink) -> MessagingClient:
        ...


def to_chat_id(destination: str) -> str:
    """Normalize a phone number to a chat id; full ids pass through."""
    destination = destination.strip()
    if "@" in destination:
        return destination
    digits = _NON_DIGITS.sub("", destination)
    if not digits:
        raise ValueError(f"Destination {destination!r} contains no digits")
    return f"{digits}{CHAT_SUFFIX}"

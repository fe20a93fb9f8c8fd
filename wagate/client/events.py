"""Typed lifecycle events emitted by a messaging client."""
from dataclasses import dataclass
from typing import Callable, Union


@dataclass(frozen=True)
class QrCode:
    """A new pairing code is available (raw payload, not yet rendered)."""
    code: str


@dataclass(frozen=True)
class Authenticated:
    """Credentials accepted; the session is not usable until Ready."""


@dataclass(frozen=True)
class Ready:
    """The session is fully connected and can send messages."""


@dataclass(frozen=True)
class Disconnected:
    reason: str = "unknown"


@dataclass(frozen=True)
class AuthFailure:
    reason: str = "unknown"


ClientEvent = Union[QrCode, Authenticated, Ready, Disconnected, AuthFailure]
EventSink = Callable[[ClientEvent], None]

"""Messaging-client contract and the websocket bridge implementation."""
from wagate.client.base import ClientFactory, ClientInfo, MessagingClient, to_chat_id
from wagate.client.bridge import BridgeClient, bridge_client_factory
from wagate.client.events import (
    AuthFailure, Authenticated, ClientEvent, Disconnected, EventSink, QrCode, Ready,
)
from wagate.client.exceptions import AuthFailureError, ClientError, TeardownError, TransportError

__all__ = [
    "ClientFactory", "ClientInfo", "MessagingClient", "to_chat_id",
    "BridgeClient", "bridge_client_factory",
    "AuthFailure", "Authenticated", "ClientEvent", "Disconnected", "EventSink", "QrCode", "Ready",
    "AuthFailureError", "ClientError", "TeardownError", "TransportError",
]

"""Exception types raised by messaging-client implementations."""


class ClientError(Exception):
    """Base exception for all messaging-client errors."""
    pass


class TransportError(ClientError):
    """Sending through the messaging client failed."""
    def __init__(self, message: str, chat_id: str | None = None) -> None:
        super().__init__(message)
        self.chat_id = chat_id


class AuthFailureError(ClientError):
    """The messaging service rejected the stored credentials."""
    pass


class TeardownError(ClientError):
    """The client could not be shut down cleanly."""
    pass

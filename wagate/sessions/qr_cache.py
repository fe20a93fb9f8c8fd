"""Ephemeral store of the most recent pairing image per session."""
from typing import Optional


class QrCache:
    """Holds one data-URL image per session id. Nothing is persisted.

    Owned by SessionRegistry, which keeps it consistent with session state.
    """

    def __init__(self) -> None:
        self._images: dict[str, str] = {}

    def put(self, session_id: str, image: str) -> None:
        self._images[session_id] = image

    def get(self, session_id: str) -> Optional[str]:
        return self._images.get(session_id)

    def clear(self, session_id: str) -> None:
        self._images.pop(session_id, None)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._images

    def __len__(self) -> int:
        return len(self._images)

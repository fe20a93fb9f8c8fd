"""Fetch the account identity of a ready session and report it upstream."""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from wagate.client.base import MessagingClient
from wagate.sessions.models import AdminIdentity

logger = logging.getLogger(__name__)


class PollOutcome(Enum):
    SUCCESS = "success"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class IdentityPollResult:
    outcome: PollOutcome
    attempts: int
    identity: Optional[AdminIdentity] = None


class AdminInfoPublisher:
    """Polls a client for its identity and POSTs it to the admin endpoint.

    The client may report incomplete info for a short while after the ready
    signal, so polling retries at a fixed interval up to ``max_attempts``.
    Publishing is best-effort: failures are logged and never retried.
    """

    def __init__(
        self,
        endpoint: str = "",
        timeout: float = 5.0,
        max_attempts: int = 5,
        interval: float = 1.0,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if interval < 0:
            raise ValueError("interval cannot be negative")
        self._endpoint = endpoint
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._interval = interval

    @property
    def enabled(self) -> bool:
        return bool(self._endpoint)

    async def poll_identity(self, handle: MessagingClient) -> IdentityPollResult:
        for attempt in range(1, self._max_attempts + 1):
            info = handle.info
            if info is not None and info.is_complete:
                identity = AdminIdentity(
                    account_id=info.account_id,
                    display_name=info.display_name,
                    battery_level=info.battery_level,
                )
                return IdentityPollResult(PollOutcome.SUCCESS, attempt, identity)
            if attempt < self._max_attempts:
                await asyncio.sleep(self._interval)
        return IdentityPollResult(PollOutcome.TIMEOUT, self._max_attempts)

    async def publish(self, session_id: str, admin_number: str) -> bool:
        """POST ``{session_id, admin_number}``; returns whether it was accepted."""
        if not self.enabled:
            logger.debug("Admin endpoint not configured, skipping publish for session=%s", session_id)
            return False
        payload = {"session_id": session_id, "admin_number": admin_number}
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._endpoint, json=payload)
        except httpx.HTTPError as e:
            logger.warning("Admin publish failed for session=%s: %s", session_id, e)
            return False
        if not 200 <= response.status_code < 300:
            logger.warning(
                "Admin endpoint returned %d for session=%s: %s",
                response.status_code, session_id, response.text[:200],
            )
            return False
        logger.info("Published admin number for session=%s", session_id)
        return True

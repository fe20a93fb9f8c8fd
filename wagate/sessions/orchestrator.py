"""Session lifecycle orchestration.

Each session runs one consumer task that starts its messaging client and then
handles the client's lifecycle events in emission order. Creation claims the
session id in the registry before anything can suspend, so concurrent start
requests for one id never produce two clients on the same credential
directory.
"""
import asyncio
import logging
import shutil
from pathlib import Path
from typing import Callable, Optional

from wagate.client.base import ClientFactory, MessagingClient, to_chat_id
from wagate.client.events import (
    AuthFailure, Authenticated, ClientEvent, Disconnected, QrCode, Ready,
)
from wagate.client.exceptions import AuthFailureError, TeardownError, TransportError
from wagate.client.qr import to_data_url
from wagate.sessions.errors import NotFoundError, NotReadyError, SendFailedError, ValidationError
from wagate.sessions.models import (
    AdminIdentity, QrStatus, SessionSnapshot, SessionState, SessionStatus, Trigger,
)
from wagate.sessions.publisher import AdminInfoPublisher, PollOutcome
from wagate.sessions.registry import SessionEntry, SessionRegistry
from wagate.sessions.validation import is_valid_session_id, validate_required, validate_session_id

logger = logging.getLogger(__name__)


class SessionOrchestrator:
    """Creates, recovers and tears down messaging sessions.

    Args:
        client_factory: Builds one messaging client per session.
        sessions_dir: Root holding one credential directory per session id.
        publisher: Reports the account identity once a session is ready.
        registry: Session state store; a fresh one is created if omitted.
        auto_recreate_on_disconnect: Start a new session under the same id
            after the client reports a disconnect.
        auto_recreate_on_auth_failure: Same, after an authentication failure.
        render_qr: Turns a raw pairing code into an image data URL.
    """

    def __init__(
        self,
        client_factory: ClientFactory,
        sessions_dir: Path,
        publisher: Optional[AdminInfoPublisher] = None,
        registry: Optional[SessionRegistry] = None,
        auto_recreate_on_disconnect: bool = True,
        auto_recreate_on_auth_failure: bool = False,
        render_qr: Callable[[str], str] = to_data_url,
    ) -> None:
        self._factory = client_factory
        self._sessions_dir = sessions_dir
        self._publisher = publisher or AdminInfoPublisher()
        self._registry = registry or SessionRegistry()
        self._auto_recreate_on_disconnect = auto_recreate_on_disconnect
        self._auto_recreate_on_auth_failure = auto_recreate_on_auth_failure
        self._render_qr = render_qr
        self._closing = False

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    @property
    def sessions_dir(self) -> Path:
        return self._sessions_dir

    def credential_path(self, session_id: str) -> Path:
        return self._sessions_dir / session_id

    def request_create(self, session_id: str, admin_number: Optional[str] = None) -> bool:
        """Start a session unless one already exists. Returns True if created.

        Must be called from a running event loop.
        """
        session_id = validate_session_id(session_id)
        if self._closing:
            logger.info("Shutting down, not creating session=%s", session_id)
            return False
        entry = self._registry.claim(session_id, admin_number or None)
        if entry is None:
            logger.debug("Session already exists session=%s", session_id)
            return False
        entry.task = asyncio.create_task(self._run(entry), name=f"session:{session_id}")
        return True

    async def request_disconnect(self, session_id: str) -> None:
        """Log the session out, erase its credentials and start a fresh one."""
        session_id = validate_session_id(session_id)
        entry = self._registry.get(session_id)
        if entry is None:
            raise NotFoundError(session_id)
        if entry.state.is_terminal:
            # A teardown is already running; have it finish the job.
            entry.erase_requested = True
            entry.recreate_requested = True
            return
        await self._teardown(
            entry, Trigger.DISCONNECT, "disconnect requested", erase=True, recreate=True,
        )

    def recover(self) -> list[str]:
        """Re-create a session for every credential directory on disk."""
        if not self._sessions_dir.is_dir():
            return []
        recovered = []
        for path in sorted(self._sessions_dir.iterdir()):
            if not path.is_dir():
                continue
            if not is_valid_session_id(path.name):
                logger.warning("Skipping credential directory with invalid name: %s", path)
                continue
            if self.request_create(path.name):
                recovered.append(path.name)
        logger.info("Recovered %d session(s) from %s", len(recovered), self._sessions_dir)
        return recovered

    def get_qr(self, session_id: str) -> QrStatus:
        session_id = validate_session_id(session_id)
        image = self._registry.qr_image(session_id)
        if image is not None:
            return QrStatus(status="scan", image=image)
        state = self._registry.state_of(session_id)
        if state is SessionState.READY:
            return QrStatus(status="connected")
        if state is SessionState.UNINITIALIZED:
            return QrStatus(status="not_found")
        return QrStatus(status="initializing")

    def get_status(self, session_id: str) -> SessionStatus:
        session_id = validate_session_id(session_id)
        entry = self._registry.get(session_id)
        if entry is None:
            raise NotFoundError(session_id)
        ready = entry.state is SessionState.READY
        identity = entry.admin_identity
        if identity is None and ready and entry.handle is not None:
            info = entry.handle.info
            if info is not None and info.is_complete:
                identity = AdminIdentity(info.account_id, info.display_name, info.battery_level)
        return SessionStatus(ready=ready, state=entry.state, identity=identity)

    def list_sessions(self) -> list[SessionSnapshot]:
        return self._registry.snapshots()

    async def send(self, session_id: str, destination: Optional[str], text: Optional[str]) -> str:
        """Send ``text`` from a READY session. Returns the chat id used."""
        session_id = validate_session_id(session_id)
        destination = validate_required(destination, "number")
        text = validate_required(text, "message")
        try:
            chat_id = to_chat_id(destination)
        except ValueError as e:
            raise ValidationError(str(e), {"number": destination}) from e

        entry = self._registry.get(session_id)
        if entry is None:
            raise NotFoundError(session_id)
        handle = entry.handle
        if entry.state is not SessionState.READY or handle is None:
            raise NotReadyError(session_id, entry.state.value)

        try:
            await handle.send_message(chat_id, text)
        except TransportError as e:
            logger.error("Send failed session=%s to=%s: %s", session_id, chat_id, e)
            raise SendFailedError(f"Failed to send message: {e}", {"session_id": session_id}) from e
        logger.info("Message sent session=%s to=%s", session_id, chat_id)
        return chat_id

    async def shutdown(self) -> None:
        """Stop every client without erasing credentials or re-creating."""
        self._closing = True
        tasks: list[asyncio.Task] = []
        for session_id in self._registry:
            entry = self._registry.get(session_id)
            if entry is None:
                continue
            tasks.extend(t for t in (entry.task, entry.publish_task) if t is not None)
            await self._teardown(entry, Trigger.DISCONNECT, "shutdown", erase=False, recreate=False)
        current = asyncio.current_task()
        pending = [t for t in tasks if t is not current]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _run(self, entry: SessionEntry) -> None:
        session_id = entry.session_id
        try:
            handle = self._factory(session_id, self.credential_path(session_id), entry.events.put_nowait)
            if not self._registry.attach_handle(entry, handle):
                return
            await handle.start()
        except AuthFailureError as e:
            logger.warning("Stored credentials rejected for session=%s: %s", session_id, e)
            await self._teardown(
                entry, Trigger.AUTH_FAILURE, str(e),
                erase=True, recreate=self._auto_recreate_on_auth_failure,
            )
            return
        except Exception:
            logger.exception("Client failed to start for session=%s", session_id)
            await self._teardown(entry, Trigger.DISCONNECT, "start failed", erase=False, recreate=False)
            return

        logger.info("Client started for session=%s", session_id)
        while self._registry.is_current(entry):
            event = await entry.events.get()
            if not await self._dispatch(entry, event):
                break

    async def _dispatch(self, entry: SessionEntry, event: ClientEvent) -> bool:
        """Apply one client event. Returns False once the session is gone."""
        session_id = entry.session_id
        if isinstance(event, QrCode):
            try:
                image = self._render_qr(event.code)
            except ValueError as e:
                logger.warning("Unusable QR code for session=%s: %s", session_id, e)
                return True
            if self._registry.record_qr(entry, image):
                logger.info("QR updated for session=%s", session_id)
        elif isinstance(event, Authenticated):
            logger.info("Session authenticated session=%s, waiting for ready", session_id)
        elif isinstance(event, Ready):
            if self._registry.mark_ready(entry) and entry.handle is not None:
                logger.info("Session ready session=%s", session_id)
                entry.publish_task = asyncio.create_task(
                    self._collect_admin_info(entry, entry.handle),
                    name=f"admin-info:{session_id}",
                )
        elif isinstance(event, Disconnected):
            await self._teardown(
                entry, Trigger.DISCONNECT, event.reason,
                erase=False, recreate=self._auto_recreate_on_disconnect,
            )
            return False
        elif isinstance(event, AuthFailure):
            await self._teardown(
                entry, Trigger.AUTH_FAILURE, event.reason,
                erase=True, recreate=self._auto_recreate_on_auth_failure,
            )
            return False
        return True

    async def _teardown(
        self, entry: SessionEntry, trigger: Trigger, reason: str, *, erase: bool, recreate: bool,
    ) -> None:
        session_id = entry.session_id
        state = self._registry.begin_teardown(entry, trigger)
        if state is None:
            return
        logger.info("Tearing down session=%s state=%s reason=%s", session_id, state.value, reason)

        if entry.publish_task is not None and not entry.publish_task.done():
            entry.publish_task.cancel()
        if entry.handle is not None:
            await self._destroy_handle(session_id, entry.handle)
        if erase or entry.erase_requested:
            await self._erase_credentials(session_id)

        recreate = (recreate or entry.recreate_requested) and not self._closing
        admin_number = entry.admin_number
        self._registry.remove(entry)
        if entry.task is not None and entry.task is not asyncio.current_task() and not entry.task.done():
            entry.task.cancel()
        if recreate:
            self.request_create(session_id, admin_number)

    async def _destroy_handle(self, session_id: str, handle: MessagingClient) -> None:
        try:
            await handle.destroy()
        except TeardownError as e:
            logger.warning("Client teardown failed for session=%s: %s", session_id, e)
        except Exception:
            logger.exception("Unexpected error destroying client for session=%s", session_id)

    async def _erase_credentials(self, session_id: str) -> None:
        path = self.credential_path(session_id)
        if not path.exists():
            return
        try:
            await asyncio.to_thread(shutil.rmtree, path)
        except OSError as e:
            logger.warning("Could not erase credentials for session=%s at %s: %s", session_id, path, e)
            return
        logger.info("Erased credentials for session=%s", session_id)

    async def _collect_admin_info(self, entry: SessionEntry, handle: MessagingClient) -> None:
        session_id = entry.session_id
        result = await self._publisher.poll_identity(handle)
        if result.outcome is PollOutcome.TIMEOUT:
            logger.warning(
                "No account identity after %d attempts for session=%s",
                result.attempts, session_id,
            )
            return
        if not self._registry.set_admin_identity(entry, handle, result.identity):
            return
        logger.info(
            "Cached identity for session=%s account=%s after %d attempt(s)",
            session_id, result.identity.account_id, result.attempts,
        )
        await self._publisher.publish(session_id, result.identity.account_id)

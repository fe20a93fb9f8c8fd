"""Shared fixtures: an in-memory messaging client and orchestrator wiring."""
import asyncio
import time
from pathlib import Path
from typing import Callable, Optional

import pytest
from fastapi.testclient import TestClient

from wagate.client.base import ClientInfo, MessagingClient
from wagate.client.events import ClientEvent, EventSink
from wagate.server.app import create_app
from wagate.server.config import AdminConfig, LifecycleConfig, ServerConfig
from wagate.sessions.orchestrator import SessionOrchestrator
from wagate.sessions.publisher import AdminInfoPublisher


def fake_qr(code: str) -> str:
    """Stand-in for PNG rendering so orchestrator tests stay fast."""
    return f"data:image/png;base64,{code}"


class FakeClient(MessagingClient):
    """Messaging client driven by the test instead of a real account."""

    def __init__(
        self,
        session_id: str,
        credential_path: Path,
        emit: EventSink,
        script: tuple[ClientEvent, ...] = (),
        info: Optional[ClientInfo] = None,
    ) -> None:
        super().__init__(session_id, credential_path, emit)
        self._script = script
        self._info = info
        self.start_error: Optional[Exception] = None
        self.send_error: Optional[Exception] = None
        self.destroy_error: Optional[Exception] = None
        self.destroy_gate: Optional[asyncio.Event] = None
        self.started = False
        self.destroyed = False
        self.sent: list[tuple[str, str]] = []

    @property
    def info(self) -> Optional[ClientInfo]:
        return self._info

    @info.setter
    def info(self, value: Optional[ClientInfo]) -> None:
        self._info = value

    async def start(self) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.credential_path.mkdir(parents=True, exist_ok=True)
        self.started = True
        for event in self._script:
            self._emit(event)

    async def send_message(self, chat_id: str, text: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((chat_id, text))

    async def destroy(self) -> None:
        self.destroyed = True
        if self.destroy_gate is not None:
            await self.destroy_gate.wait()
        if self.destroy_error is not None:
            raise self.destroy_error

    def fire(self, event: ClientEvent) -> None:
        self._emit(event)


class FakeClientHub:
    """ClientFactory that records every client it builds.

    ``scripts`` and ``infos`` preload events and account info per session
    id; ``start_errors`` makes the next client for an id fail to start.
    """

    def __init__(self) -> None:
        self.clients: list[FakeClient] = []
        self.scripts: dict[str, tuple[ClientEvent, ...]] = {}
        self.infos: dict[str, ClientInfo] = {}
        self.start_errors: dict[str, Exception] = {}

    def __call__(self, session_id: str, credential_path: Path, emit: EventSink) -> FakeClient:
        client = FakeClient(
            session_id, credential_path, emit,
            script=self.scripts.get(session_id, ()),
            info=self.infos.get(session_id),
        )
        client.start_error = self.start_errors.pop(session_id, None)
        self.clients.append(client)
        return client

    def for_session(self, session_id: str) -> list[FakeClient]:
        return [c for c in self.clients if c.session_id == session_id]

    def latest(self, session_id: str) -> FakeClient:
        return self.for_session(session_id)[-1]


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the event loop until ``predicate`` holds."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.005)


def poll_until(fetch: Callable[[], dict], predicate: Callable[[dict], bool], timeout: float = 2.0) -> dict:
    """Repeat a blocking HTTP call until its JSON satisfies ``predicate``."""
    deadline = time.monotonic() + timeout
    while True:
        data = fetch()
        if predicate(data):
            return data
        if time.monotonic() > deadline:
            raise AssertionError(f"last response did not match: {data}")
        time.sleep(0.01)


@pytest.fixture
def hub() -> FakeClientHub:
    return FakeClientHub()


@pytest.fixture
def sessions_dir(tmp_path: Path) -> Path:
    path = tmp_path / "sessions"
    path.mkdir()
    return path


@pytest.fixture
def publisher() -> AdminInfoPublisher:
    return AdminInfoPublisher(endpoint="", max_attempts=3, interval=0.01)


@pytest.fixture
def orchestrator(hub: FakeClientHub, sessions_dir: Path, publisher: AdminInfoPublisher) -> SessionOrchestrator:
    return SessionOrchestrator(
        client_factory=hub,
        sessions_dir=sessions_dir,
        publisher=publisher,
        render_qr=fake_qr,
    )


@pytest.fixture
def server_config(sessions_dir: Path) -> ServerConfig:
    return ServerConfig(
        sessions_dir=sessions_dir,
        recover_on_startup=True,
        lifecycle=LifecycleConfig(auto_recreate_on_disconnect=True),
        admin=AdminConfig(endpoint="", poll_attempts=3, poll_interval=0.01),
    )


@pytest.fixture
def client(server_config: ServerConfig, hub: FakeClientHub) -> TestClient:
    app = create_app(server_config, client_factory=hub)
    with TestClient(app) as c:
        yield c

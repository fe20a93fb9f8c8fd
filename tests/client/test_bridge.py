"""Tests for the websocket bridge client."""
import asyncio
import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from wagate.client.bridge import BridgeClient, bridge_client_factory, parse_info
from wagate.client.events import AuthFailure, Authenticated, Disconnected, QrCode, Ready
from wagate.client.exceptions import AuthFailureError, ClientError, TransportError
from wagate.sessions.orchestrator import SessionOrchestrator
from tests.conftest import fake_qr, wait_until


class FakeSocket:
    """Websocket double: ``replies`` answer recv(), ``push`` feeds the reader."""

    def __init__(self, replies: list[dict]) -> None:
        self.sent: list[dict] = []
        self.closed = False
        self.send_error: Exception | None = None
        self._replies = [json.dumps(r) for r in replies]
        self._incoming: asyncio.Queue = asyncio.Queue()

    async def send(self, raw: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(json.loads(raw))

    async def recv(self) -> str:
        if not self._replies:
            await asyncio.get_running_loop().create_future()
        return self._replies.pop(0)

    async def close(self) -> None:
        self.closed = True
        self._incoming.put_nowait(None)

    def push(self, frame) -> None:
        self._incoming.put_nowait(frame if isinstance(frame, str) else json.dumps(frame))

    def __aiter__(self):
        return self._frames()

    async def _frames(self):
        while True:
            raw = await self._incoming.get()
            if raw is None:
                return
            yield raw


def _client(events: list, token: str = "", send_timeout: float = 1.0) -> BridgeClient:
    return BridgeClient(
        "shop1", Path("/data/sessions/shop1"), events.append,
        bridge_url="ws://bridge.local", token=token, send_timeout=send_timeout,
    )


async def _started(events: list, sock: FakeSocket, **kwargs) -> BridgeClient:
    client = _client(events, **kwargs)
    with patch("wagate.client.bridge.websockets.connect", new=AsyncMock(return_value=sock)):
        await client.start()
    return client


class TestStart:
    @pytest.mark.asyncio
    async def test_sends_auth_then_start(self) -> None:
        sock = FakeSocket([{"type": "started"}])
        client = await _started([], sock, token="secret")
        assert sock.sent[0] == {"type": "auth", "token": "secret"}
        assert sock.sent[1] == {
            "type": "start", "session_id": "shop1", "data_path": "/data/sessions/shop1",
        }
        await client.destroy()

    @pytest.mark.asyncio
    async def test_no_auth_frame_without_token(self) -> None:
        sock = FakeSocket([{"type": "started"}])
        client = await _started([], sock)
        assert sock.sent[0]["type"] == "start"
        await client.destroy()

    @pytest.mark.asyncio
    async def test_rejected_credentials(self) -> None:
        sock = FakeSocket([{"type": "auth_failure", "message": "session expired"}])
        with pytest.raises(AuthFailureError, match="session expired"):
            await _started([], sock)
        assert sock.closed

    @pytest.mark.asyncio
    async def test_unexpected_reply(self) -> None:
        sock = FakeSocket([{"type": "error", "error": "busy"}])
        with pytest.raises(ClientError, match="Unexpected"):
            await _started([], sock)

    @pytest.mark.asyncio
    async def test_connection_refused(self) -> None:
        client = _client([])
        with patch(
            "wagate.client.bridge.websockets.connect",
            new=AsyncMock(side_effect=ConnectionRefusedError("refused")),
        ):
            with pytest.raises(ClientError, match="start failed"):
                await client.start()

    @pytest.mark.asyncio
    async def test_destroy_while_connecting_closes_late_socket(self) -> None:
        sock = FakeSocket([{"type": "started"}])
        connected = asyncio.Event()

        async def slow_connect(url: str) -> FakeSocket:
            await connected.wait()
            return sock

        client = _client([])
        with patch("wagate.client.bridge.websockets.connect", new=slow_connect):
            start = asyncio.create_task(client.start())
            await asyncio.sleep(0)
            await client.destroy()
            connected.set()
            with pytest.raises(ClientError, match="destroyed"):
                await start

        assert sock.closed
        assert sock.sent == []

    @pytest.mark.asyncio
    async def test_cancelled_start_closes_socket(self) -> None:
        sock = FakeSocket([])
        client = _client([])
        with patch("wagate.client.bridge.websockets.connect", new=AsyncMock(return_value=sock)):
            start = asyncio.create_task(client.start())
            await wait_until(lambda: bool(sock.sent))
            start.cancel()
            with pytest.raises(asyncio.CancelledError):
                await start
        assert sock.closed


class TestFrames:
    @pytest.mark.asyncio
    async def test_lifecycle_frames_become_events(self) -> None:
        events: list = []
        sock = FakeSocket([{"type": "started"}])
        client = await _started(events, sock)

        sock.push({"type": "qr", "qr": "2@pair"})
        sock.push({"type": "authenticated"})
        sock.push({"type": "ready", "info": {"wid": {"user": "62811"}, "pushname": "Shop", "battery": "64"}})
        sock.push({"type": "auth_failure", "message": "conflict"})
        sock.push("not json")
        sock.push({"type": "disconnected", "reason": "LOGOUT"})
        await wait_until(lambda: len(events) == 5)

        assert events == [
            QrCode("2@pair"), Authenticated(), Ready(), AuthFailure("conflict"), Disconnected("LOGOUT"),
        ]
        assert client.info.account_id == "62811"
        assert client.info.battery_level == 64
        await client.destroy()

    @pytest.mark.asyncio
    async def test_connection_loss_reports_disconnect(self) -> None:
        events: list = []
        sock = FakeSocket([{"type": "started"}])
        await _started(events, sock)
        await sock.close()
        await wait_until(lambda: bool(events))
        assert isinstance(events[0], Disconnected)

    @pytest.mark.asyncio
    async def test_destroy_is_silent(self) -> None:
        events: list = []
        sock = FakeSocket([{"type": "started"}])
        client = await _started(events, sock)
        await client.destroy()
        await asyncio.sleep(0.01)
        assert events == []
        assert sock.sent[-1] == {"type": "destroy"}
        assert sock.closed


class TestSend:
    @pytest.mark.asyncio
    async def test_ack_completes_send(self) -> None:
        sock = FakeSocket([{"type": "started"}])
        client = await _started([], sock)

        send = asyncio.create_task(client.send_message("62811@c.us", "hello"))
        await wait_until(lambda: len(sock.sent) == 2)
        frame = sock.sent[1]
        assert frame["to"] == "62811@c.us"
        assert frame["text"] == "hello"
        sock.push({"type": "ack", "id": frame["id"], "ok": True})
        await send
        await client.destroy()

    @pytest.mark.asyncio
    async def test_negative_ack_raises(self) -> None:
        sock = FakeSocket([{"type": "started"}])
        client = await _started([], sock)

        send = asyncio.create_task(client.send_message("62811@c.us", "hello"))
        await wait_until(lambda: len(sock.sent) == 2)
        sock.push({"type": "ack", "id": sock.sent[1]["id"], "ok": False, "error": "not on network"})
        with pytest.raises(TransportError, match="not on network"):
            await send
        await client.destroy()

    @pytest.mark.asyncio
    async def test_ack_timeout(self) -> None:
        sock = FakeSocket([{"type": "started"}])
        client = await _started([], sock, send_timeout=0.05)
        with pytest.raises(TransportError, match="No acknowledgment"):
            await client.send_message("62811@c.us", "hello")
        await client.destroy()

    @pytest.mark.asyncio
    async def test_send_before_start(self) -> None:
        with pytest.raises(TransportError, match="not open"):
            await _client([]).send_message("62811@c.us", "hello")

    @pytest.mark.asyncio
    async def test_socket_error_becomes_transport_error(self) -> None:
        sock = FakeSocket([{"type": "started"}])
        client = await _started([], sock)
        sock.send_error = ConnectionResetError("reset by peer")
        with pytest.raises(TransportError, match="reset by peer"):
            await client.send_message("62811@c.us", "hello")
        sock.send_error = None
        await client.destroy()


class TestParseInfo:
    def test_plain_wid(self) -> None:
        info = parse_info({"wid": "62811", "pushname": "Shop", "battery": 90})
        assert info.account_id == "62811"
        assert info.display_name == "Shop"
        assert info.battery_level == 90

    def test_missing_fields(self) -> None:
        info = parse_info({"battery": "full"})
        assert info.account_id == ""
        assert info.display_name is None
        assert info.battery_level is None
        assert not info.is_complete


def test_factory_builds_bridge_clients() -> None:
    factory = bridge_client_factory("ws://bridge.local", token="t")
    client = factory("shop1", Path("/tmp/shop1"), lambda event: None)
    assert isinstance(client, BridgeClient)
    assert client.session_id == "shop1"


class TestTeardownDuringStart:
    """A session torn down while its bridge connection is still opening."""

    @pytest.mark.asyncio
    async def test_old_bridge_session_closed_before_recreate(self, sessions_dir: Path, publisher) -> None:
        sockets: list[FakeSocket] = []
        first_connect = asyncio.Event()

        async def connect(url: str) -> FakeSocket:
            sock = FakeSocket([{"type": "started"}])
            sockets.append(sock)
            if len(sockets) == 1:
                await first_connect.wait()
            return sock

        orchestrator = SessionOrchestrator(
            bridge_client_factory("ws://bridge.local", send_timeout=1.0),
            sessions_dir, publisher=publisher, render_qr=fake_qr,
        )
        erase = orchestrator._erase_credentials

        async def erase_after_connect(session_id: str) -> None:
            first_connect.set()
            await asyncio.sleep(0.01)
            await erase(session_id)

        orchestrator._erase_credentials = erase_after_connect

        with patch("wagate.client.bridge.websockets.connect", new=connect):
            orchestrator.request_create("shop1")
            await wait_until(lambda: len(sockets) == 1)
            await orchestrator.request_disconnect("shop1")
            await wait_until(lambda: len(sockets) == 2 and bool(sockets[1].sent))

            assert sockets[0].closed
            assert not any(frame["type"] == "start" for frame in sockets[0].sent)
            assert not sockets[1].closed
            await orchestrator.shutdown()

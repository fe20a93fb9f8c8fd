"""Messaging client backed by a websocket bridge process.

The bridge hosts the browser-based messaging client and speaks a small JSON
protocol, one websocket connection per session:

    -> {"type": "auth", "token": "..."}          (only when a token is set)
    -> {"type": "start", "session_id": "...", "data_path": "..."}
    <- {"type": "started"} | {"type": "auth_failure", "message": "..."}
    <- {"type": "qr", "qr": "..."}
    <- {"type": "authenticated"}
    <- {"type": "ready", "info": {"wid": "...", "pushname": "...", "battery": 87}}
    <- {"type": "info", "info": {...}}
    <- {"type": "disconnected", "reason": "..."}
    -> {"type": "send", "id": "...", "to": "...", "text": "..."}
    <- {"type": "ack", "id": "...", "ok": true, "error": null}
    -> {"type": "destroy"}
"""
import asyncio
import contextlib
import json
import logging
import uuid
from pathlib import Path
from typing import Any, Optional

import websockets

from wagate.client.base import ClientFactory, ClientInfo, MessagingClient
from wagate.client.events import (
    AuthFailure, Authenticated, Disconnected, EventSink, QrCode, Ready,
)
from wagate.client.exceptions import AuthFailureError, ClientError, TeardownError, TransportError

logger = logging.getLogger(__name__)


class BridgeClient(MessagingClient):
    """Drives one session on the bridge and relays its lifecycle events."""

    def __init__(
        self,
        session_id: str,
        credential_path: Path,
        emit: EventSink,
        bridge_url: str,
        token: str = "",
        send_timeout: float = 30.0,
    ) -> None:
        super().__init__(session_id, credential_path, emit)
        self._bridge_url = bridge_url
        self._token = token
        self._send_timeout = send_timeout
        self._ws: Optional[Any] = None
        self._reader: Optional[asyncio.Task] = None
        self._info: Optional[ClientInfo] = None
        self._pending: dict[str, asyncio.Future] = {}
        self._closing = False

    @property
    def info(self) -> Optional[ClientInfo]:
        return self._info

    async def start(self) -> None:
        started = False
        try:
            ws = self._ws = await websockets.connect(self._bridge_url)
            if self._closing:
                raise ClientError(f"Bridge client for {self.session_id} was destroyed while connecting")
            if self._token:
                await ws.send(json.dumps({"type": "auth", "token": self._token}))
            await ws.send(json.dumps({
                "type": "start",
                "session_id": self.session_id,
                "data_path": str(self.credential_path),
            }))
            reply = json.loads(await asyncio.wait_for(ws.recv(), timeout=self._send_timeout))
            reply_type = reply.get("type")
            if reply_type == "auth_failure":
                raise AuthFailureError(reply.get("message") or "credentials rejected")
            if reply_type != "started":
                raise ClientError(f"Unexpected bridge reply to start: {reply_type!r}")
            if self._closing:
                raise ClientError(f"Bridge client for {self.session_id} was destroyed while starting")
            started = True
        except (OSError, asyncio.TimeoutError, json.JSONDecodeError, websockets.WebSocketException) as e:
            raise ClientError(f"Bridge start failed for {self.session_id}: {e}") from e
        finally:
            # Also runs on cancellation, so an abandoned start never keeps a bridge session open.
            if not started:
                await self._close_quietly()

        logger.info("Bridge client started for session=%s", self.session_id)
        self._reader = asyncio.create_task(self._read_loop())

    async def send_message(self, chat_id: str, text: str) -> None:
        if self._ws is None:
            raise TransportError("Bridge connection is not open", chat_id=chat_id)
        request_id = uuid.uuid4().hex
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            await self._ws.send(json.dumps({"type": "send", "id": request_id, "to": chat_id, "text": text}))
            await asyncio.wait_for(future, timeout=self._send_timeout)
        except asyncio.TimeoutError as e:
            raise TransportError(f"No acknowledgment within {self._send_timeout}s", chat_id=chat_id) from e
        except (OSError, websockets.WebSocketException) as e:
            raise TransportError(f"Bridge connection lost: {e}", chat_id=chat_id) from e
        finally:
            self._pending.pop(request_id, None)

    async def destroy(self) -> None:
        self._closing = True
        try:
            if self._ws is not None:
                await self._ws.send(json.dumps({"type": "destroy"}))
                await self._ws.close()
        except (OSError, websockets.WebSocketException) as e:
            raise TeardownError(f"Bridge teardown failed for {self.session_id}: {e}") from e
        finally:
            self._ws = None
            if self._reader is not None and self._reader is not asyncio.current_task():
                self._reader.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._reader

    async def _read_loop(self) -> None:
        reason = "bridge connection closed"
        try:
            async for raw in self._ws:
                self._handle_frame(raw)
        except websockets.ConnectionClosed as e:
            reason = f"bridge connection closed: {e}"
        finally:
            self._fail_pending(TransportError("Bridge connection closed"))
        if not self._closing:
            self._emit(Disconnected(reason))

    def _handle_frame(self, raw: str) -> None:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Invalid JSON from bridge for session=%s: %s", self.session_id, raw[:100])
            return

        frame_type = data.get("type")
        if frame_type == "qr":
            self._emit(QrCode(data.get("qr", "")))
        elif frame_type == "authenticated":
            self._emit(Authenticated())
        elif frame_type == "ready":
            self._update_info(data.get("info"))
            self._emit(Ready())
        elif frame_type == "info":
            self._update_info(data.get("info"))
        elif frame_type == "disconnected":
            self._emit(Disconnected(data.get("reason") or "unknown"))
        elif frame_type == "auth_failure":
            self._emit(AuthFailure(data.get("message") or "unknown"))
        elif frame_type == "ack":
            self._resolve_ack(data)
        elif frame_type == "error":
            logger.error("Bridge error for session=%s: %s", self.session_id, data.get("error"))
        else:
            logger.debug("Ignoring bridge frame %r for session=%s", frame_type, self.session_id)

    def _update_info(self, raw: Optional[dict]) -> None:
        if raw:
            self._info = parse_info(raw)

    def _resolve_ack(self, data: dict) -> None:
        future = self._pending.get(data.get("id", ""))
        if future is None or future.done():
            return
        if data.get("ok"):
            future.set_result(None)
        else:
            future.set_exception(TransportError(data.get("error") or "send rejected"))

    def _fail_pending(self, error: TransportError) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)

    async def _close_quietly(self) -> None:
        if self._ws is None:
            return
        with contextlib.suppress(OSError, websockets.WebSocketException):
            await self._ws.close()
        self._ws = None


def parse_info(raw: dict) -> ClientInfo:
    """Build ClientInfo from the bridge's info payload."""
    wid = raw.get("wid") or ""
    if isinstance(wid, dict):
        wid = wid.get("user") or ""
    battery = raw.get("battery")
    try:
        battery_level = int(battery) if battery is not None else None
    except (TypeError, ValueError):
        battery_level = None
    return ClientInfo(
        account_id=str(wid),
        display_name=raw.get("pushname") or None,
        battery_level=battery_level,
    )


def bridge_client_factory(bridge_url: str, token: str = "", send_timeout: float = 30.0) -> ClientFactory:
    """Return a factory that opens one bridge connection per session."""

    def create(session_id: str, credential_path: Path, emit: EventSink) -> BridgeClient:
        return BridgeClient(
            session_id, credential_path, emit,
            bridge_url=bridge_url, token=token, send_timeout=send_timeout,
        )

    return create

"""Session endpoints: start, qr, status, send, disconnect, list."""
import logging
from typing import Optional

from fastapi import APIRouter, Query, status

from wagate.server.models.requests import DisconnectRequest, SendRequest
from wagate.server.models.responses import (
    DisconnectResponse,
    IdentityModel,
    QrResponse,
    SendResponse,
    SessionInfo,
    SessionListResponse,
    StartResponse,
    StatusResponse,
)
from wagate.sessions.orchestrator import SessionOrchestrator
from wagate.sessions.validation import validate_session_id

logger = logging.getLogger(__name__)


def create_session_router(orchestrator: SessionOrchestrator) -> APIRouter:
    """Create the /api session router with injected dependencies.

    Errors raised by the orchestrator propagate to the app-level
    GatewayError handler, which renders them with their status code.
    """
    router = APIRouter(prefix="/api", tags=["sessions"])

    @router.get("/start", response_model=StartResponse, status_code=status.HTTP_200_OK)
    async def start_session(
        session_id: Optional[str] = Query(default=None),
        admin_number: Optional[str] = Query(default=None),
    ) -> StartResponse:
        """Start a session; a no-op if it already exists."""
        session_id = validate_session_id(session_id)
        created = orchestrator.request_create(session_id, admin_number)
        message = "Session started" if created else "Session already running"
        return StartResponse(message=message, session_id=session_id, created=created)

    @router.get("/qr", response_model=QrResponse)
    async def get_qr(session_id: Optional[str] = Query(default=None)) -> QrResponse:
        qr = orchestrator.get_qr(session_id)
        return QrResponse(status=qr.status, image=qr.image)

    @router.get("/status", response_model=StatusResponse)
    async def get_status(session_id: Optional[str] = Query(default=None)) -> StatusResponse:
        result = orchestrator.get_status(session_id)
        return StatusResponse(
            ready=result.ready,
            state=result.state.value,
            identity=IdentityModel.from_identity(result.identity),
        )

    @router.post("/send", response_model=SendResponse)
    async def send_message(body: SendRequest) -> SendResponse:
        chat_id = await orchestrator.send(body.session_id, body.number, body.message)
        return SendResponse(session_id=body.session_id.strip(), to=chat_id)

    @router.post("/disconnect", response_model=DisconnectResponse)
    async def disconnect(body: DisconnectRequest) -> DisconnectResponse:
        """Log out, erase stored credentials and start a fresh pairing."""
        session_id = validate_session_id(body.session_id)
        await orchestrator.request_disconnect(session_id)
        return DisconnectResponse(session_id=session_id)

    @router.get("/sessions", response_model=SessionListResponse)
    async def list_sessions() -> SessionListResponse:
        sessions = [SessionInfo.from_snapshot(s) for s in orchestrator.list_sessions()]
        return SessionListResponse(count=len(sessions), sessions=sessions)

    return router

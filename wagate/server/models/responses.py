"""Response models for API endpoints."""
from typing import Annotated, Literal, Optional, Any
from pydantic import BaseModel, Field

from wagate.sessions.models import AdminIdentity, SessionSnapshot


class StartResponse(BaseModel):
    message: Annotated[str, Field()]
    session_id: Annotated[str, Field()]
    created: Annotated[bool, Field(description="False when the session already existed")]


class QrResponse(BaseModel):
    status: Annotated[Literal["connected", "scan", "initializing", "not_found"], Field()]
    image: Optional[str] = None


class IdentityModel(BaseModel):
    account_id: Annotated[str, Field()]
    display_name: Optional[str] = None
    battery_level: Optional[int] = None

    @classmethod
    def from_identity(cls, identity: Optional[AdminIdentity]) -> Optional["IdentityModel"]:
        if identity is None:
            return None
        return cls(
            account_id=identity.account_id,
            display_name=identity.display_name,
            battery_level=identity.battery_level,
        )


class StatusResponse(BaseModel):
    ready: Annotated[bool, Field()]
    state: Annotated[str, Field()]
    identity: Optional[IdentityModel] = None


class SendResponse(BaseModel):
    status: Literal["sent"] = "sent"
    session_id: Annotated[str, Field()]
    to: Annotated[str, Field()]


class DisconnectResponse(BaseModel):
    status: Literal["disconnected"] = "disconnected"
    session_id: Annotated[str, Field()]


class SessionInfo(BaseModel):
    session_id: Annotated[str, Field()]
    state: Annotated[str, Field()]
    created_at: Annotated[str, Field()]
    admin_number: Optional[str] = None
    has_qr: bool = False
    identity: Optional[IdentityModel] = None

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot) -> "SessionInfo":
        return cls(
            session_id=snapshot.session_id,
            state=snapshot.state.value,
            created_at=snapshot.created_at.isoformat(),
            admin_number=snapshot.admin_number,
            has_qr=snapshot.has_qr,
            identity=IdentityModel.from_identity(snapshot.admin_identity),
        )


class SessionListResponse(BaseModel):
    count: int
    sessions: list[SessionInfo]


class HealthResponse(BaseModel):
    status: Annotated[Literal["healthy"], Field()]
    sessions: Annotated[int, Field()]
    ready: Annotated[int, Field()]
    timestamp: Annotated[str, Field()]


class ErrorDetail(BaseModel):
    code: Annotated[
        Literal[
            "INVALID_REQUEST",
            "INVALID_FORMAT",
            "SESSION_NOT_FOUND",
            "SESSION_NOT_READY",
            "TRANSPORT_ERROR",
            "INTERNAL_ERROR",
        ],
        Field(),
    ]
    message: Annotated[str, Field()]
    details: Optional[dict[str, Any]] = None


class ErrorResponse(BaseModel):
    error: ErrorDetail

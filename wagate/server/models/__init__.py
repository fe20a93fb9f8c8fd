"""Pydantic models for request/response validation."""
from wagate.server.models.requests import SendRequest, DisconnectRequest
from wagate.server.models.responses import (
    StartResponse,
    QrResponse,
    IdentityModel,
    StatusResponse,
    SendResponse,
    DisconnectResponse,
    SessionInfo,
    SessionListResponse,
    HealthResponse,
    ErrorDetail,
    ErrorResponse,
)

__all__ = [
    "SendRequest",
    "DisconnectRequest",
    "StartResponse",
    "QrResponse",
    "IdentityModel",
    "StatusResponse",
    "SendResponse",
    "DisconnectResponse",
    "SessionInfo",
    "SessionListResponse",
    "HealthResponse",
    "ErrorDetail",
    "ErrorResponse",
]

"""Request models for API endpoints.

Fields are optional at the schema level so missing identifiers surface as
the gateway's own 400 INVALID_REQUEST instead of a framework 422.
"""
from typing import Optional
from pydantic import BaseModel


class SendRequest(BaseModel):
    session_id: Optional[str] = None
    number: Optional[str] = None
    message: Optional[str] = None


class DisconnectRequest(BaseModel):
    session_id: Optional[str] = None

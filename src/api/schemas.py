"""API-facing Pydantic models."""

from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str = "active"
    message: str = "Twilio Media Stream Server is running!"


class CallStatusResponse(BaseModel):
    status: str = "ok"
    call_sid: str | None = None
    session_removed: bool = False

"""Pydantic schemas for the ping endpoint."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class PingResponse(BaseModel):
    """Echo returned to callers admitted past the rate limiter."""

    message: str = Field("pong", description="Constant reply body.")
    client: str = Field(..., description="Client address the request was counted against.")
    served_at: datetime = Field(..., description="UTC time the request was served.")

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from iplimit.limiting.policy import client_address
from iplimit.schemas.ping import PingResponse

router = APIRouter(tags=["Ping"])


@router.get("/ping", response_model=PingResponse)
async def ping(request: Request) -> PingResponse:
    """Sample protected operation.

    Reaching this handler means the rate limit middleware admitted the call;
    rejected calls never get here.
    """

    return PingResponse(
        client=client_address(request),
        served_at=datetime.now(timezone.utc),
    )

from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness endpoint, exempt from rate limiting by default.

    Reports whether a counter store is backing the mounted limiter so
    operators can tell "no limiting" deployments apart from misconfigured
    ones. The store itself is not contacted.

    Returns:
        dict: ``status`` ("ok") and ``rate_limiting`` ("enabled" / "disabled").
    """

    policy = getattr(request.app.state, "limiter_policy", None)
    enabled = policy is not None and policy.enabled
    return {"status": "ok", "rate_limiting": "enabled" if enabled else "disabled"}

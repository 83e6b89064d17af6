"""Pipeline integration for limiter policies.

Two mounting styles are provided:

- ``RateLimitMiddleware``: app-wide HTTP middleware.
    app.middleware("http")(RateLimitMiddleware(policy))
- ``rate_limit_dependency``: router- or route-scoped dependency.
    APIRouter(dependencies=[Depends(rate_limit_dependency(policy))])

Both produce the same rejection payload. Admitted requests pass through
untouched.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Iterable

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from iplimit.core.errors import AppError, RateLimitExceededError
from iplimit.limiting.policy import LimiterPolicy

# Application-level error code carried in rejection bodies (HTTP status stays 200)
REJECTION_CODE = 7

CallNext = Callable[[Request], Awaitable[Response]]


def build_rejection_response(exc: AppError) -> JSONResponse:
    """Render a rejection as ``{"code": 7, "msg": ..., "data": {}}``.

    A ``Retry-After`` header is added when the rejection carries a positive
    countdown.
    """

    headers: dict[str, str] = {}
    if isinstance(exc, RateLimitExceededError) and exc.retry_after:
        headers["Retry-After"] = str(exc.retry_after)

    return JSONResponse(
        status_code=200,
        content={"code": REJECTION_CODE, "msg": exc.message, "data": {}},
        headers=headers or None,
    )


class RateLimitMiddleware:
    """HTTP middleware enforcing a limiter policy before any route handler.

    On rejection the pipeline stops here: ``call_next`` is never invoked.
    """

    def __init__(self, policy: LimiterPolicy, *, exempt_paths: Iterable[str] = ()) -> None:
        self.policy = policy
        self.exempt_paths = frozenset(exempt_paths)

    async def __call__(self, request: Request, call_next: CallNext) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        try:
            await self.policy.evaluate(request)
        except AppError as exc:
            return build_rejection_response(exc)

        return await call_next(request)


def rate_limit_dependency(policy: LimiterPolicy) -> Callable[[Request], Awaitable[None]]:
    """Wrap a policy as a FastAPI dependency.

    Rejections propagate as ``AppError`` and are rendered by the registered
    exception handlers with the same payload as the middleware.
    """

    async def enforce_rate_limit(request: Request) -> None:
        await policy.evaluate(request)

    return enforce_rate_limit

"""Application factory for the FastAPI app.

Centralizes app construction (logging, middleware, handlers, routers, store
lifecycle) so tests can build isolated apps with their own store or policy.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from iplimit.adapters.counter_store.base import AbstractCounterStore
from iplimit.api.routes import health_router, ping_router
from iplimit.core.config import parse_csv, settings
from iplimit.core.exception_handlers import setup_exception_handlers
from iplimit.core.logging import configure_logging
from iplimit.core.middleware import request_id_middleware
from iplimit.core.openapi import apply_openapi_customizations
from iplimit.limiting.defaults import default_limit
from iplimit.limiting.middleware import RateLimitMiddleware
from iplimit.limiting.policy import LimiterPolicy

logger = logging.getLogger(__name__)


def create_app(
    store: AbstractCounterStore | None = None,
    policy: LimiterPolicy | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        store: Counter store for the default policy; built from settings when
            omitted. Ignored when ``policy`` is given.
        policy: Limiter policy to mount instead of the default one.

    Returns:
        Configured FastAPI app.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    limiter: RateLimitMiddleware | None = None
    if policy is not None:
        limiter = RateLimitMiddleware(
            policy, exempt_paths=parse_csv(settings.limit.exempt_paths)
        )
    elif settings.limit.enabled:
        limiter = default_limit(store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if app.state.limiter_policy is not None:
            await app.state.limiter_policy.close()

    app = FastAPI(
        title=settings.app.name,
        description=(
            "Admission control service: limits how often each client address "
            "may call protected operations within a fixed window, using Redis "
            "as the shared counter store."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.limiter_policy = limiter.policy if limiter else None

    # Middleware: the last registered runs first, so request ids wrap rejections
    if limiter is not None:
        app.middleware("http")(limiter)
        logger.info(
            "rate_limit.mounted",
            extra={
                "policy": type(limiter.policy).__name__,
                "limit": limiter.policy.limit_count,
                "window_s": limiter.policy.expire_seconds,
                "exempt_paths": sorted(limiter.exempt_paths),
            },
        )
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(ping_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(
        app, rate_limited=limiter is not None and limiter.policy.enabled
    )

    return app

"""Global exception handlers for consistent error responses.

Design:
- RateLimitExceededError / StoreError → the rate limit rejection payload
  (HTTP 200, application error code), same as the middleware
- Other AppError subclasses → 400 with an ``error`` envelope
- Unexpected Exception → generic 500 (safety net)
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from iplimit.core.errors import AppError, RateLimitExceededError, StoreError
from iplimit.core.logging import get_request_id
from iplimit.limiting.middleware import build_rejection_response

logger = logging.getLogger(__name__)


async def rate_limit_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render rejections raised by the rate limit dependency.

    The policy already logged the rejection or store failure, so nothing is
    logged here.
    """
    return build_rejection_response(exc)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle remaining domain application errors with consistent JSON format.

    All responses include:
    - error.code: Machine-readable error code
    - error.message: Human-readable message
    - error.request_id: For distributed tracing
    - error.details: Optional structured context

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with status 400 and error details.
    """
    status_code = 400

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic message.
    No stack traces or exception text reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with a FastAPI app.

    Starlette resolves handlers by walking the exception's MRO, so the
    rate limit handlers take precedence over the generic AppError handler.
    """
    app.exception_handler(RateLimitExceededError)(rate_limit_error_handler)
    app.exception_handler(StoreError)(rate_limit_error_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)

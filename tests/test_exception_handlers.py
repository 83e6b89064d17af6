"""Tests for global exception handlers.

Rate limit and store errors render the rejection payload; other errors keep
the ``error`` envelope and never leak internals.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from iplimit.core.errors import (
    AppError,
    RateLimitExceededError,
    StoreError,
    StoreUnconfiguredError,
)
from iplimit.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


class TestRateLimitHandlers:
    def test_rate_limit_error_renders_rejection_payload(self, client, app_with_handlers):
        @app_with_handlers.get("/limited")
        async def endpoint():
            raise RateLimitExceededError(
                code="rate_limited",
                message="Request too frequent, please try again in 12 seconds",
                details={"retry_after": 12},
            )

        response = client.get("/limited")

        assert response.status_code == 200
        assert response.json() == {
            "code": 7,
            "msg": "Request too frequent, please try again in 12 seconds",
            "data": {},
        }
        assert response.headers["Retry-After"] == "12"

    def test_rate_limit_error_without_countdown_has_no_header(self, client, app_with_handlers):
        @app_with_handlers.get("/limited-later")
        async def endpoint():
            raise RateLimitExceededError(
                code="rate_limited",
                message="Request too frequent, please try again later",
                details={"retry_after": 0},
            )

        response = client.get("/limited-later")

        assert response.json()["code"] == 7
        assert "Retry-After" not in response.headers

    def test_store_error_renders_rejection_payload(self, client, app_with_handlers):
        @app_with_handlers.get("/store-down")
        async def endpoint():
            raise StoreError(code="store_error", message="Counter store operation failed")

        response = client.get("/store-down")

        assert response.status_code == 200
        assert response.json()["msg"] == "Counter store operation failed"

    def test_store_unconfigured_is_a_store_error(self):
        assert issubclass(StoreUnconfiguredError, StoreError)


class TestAppErrorHandler:
    def test_app_error_returns_400(self, client, app_with_handlers):
        @app_with_handlers.get("/test-validation")
        async def endpoint():
            raise AppError(code="bad_key", message="Key must not be empty")

        response = client.get("/test-validation")

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "bad_key"
        assert data["error"]["message"] == "Key must not be empty"
        assert "request_id" in data["error"]

    def test_details_included_when_present(self, client, app_with_handlers):
        @app_with_handlers.get("/test-details")
        async def endpoint():
            raise AppError(
                code="bad_window",
                message="Window too small",
                details={"window_s": 0},
            )

        data = client.get("/test-details").json()
        assert data["error"]["details"]["window_s"] == 0


class TestGeneralExceptionHandler:
    def test_general_exception_handler_hides_internals(self):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = RuntimeError("redis password=hunter2 rejected")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_server_error"
        assert "hunter2" not in data["error"]["message"]
        assert "RuntimeError" not in bytes(response.body).decode()


def test_setup_registers_all_handlers(app_with_handlers: FastAPI):
    for exc_type in (RateLimitExceededError, StoreError, AppError, Exception):
        assert exc_type in app_with_handlers.exception_handlers

"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any import that might load settings.
"""

import os

import pytest
from starlette.requests import Request

os.environ["APP_ENV"] = "testing"

# No shared store unless a test injects one
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("LIMIT_LIMIT_TIME_IP", "60")
os.environ.setdefault("LIMIT_LIMIT_COUNT_IP", "3")
os.environ.setdefault("LIMIT_EXEMPT_PATHS", "/health")
os.environ.setdefault("LOG_FORMAT", "plain")
os.environ.setdefault("LOG_LEVEL", "WARNING")


def make_request(
    host: str | None = "10.0.0.1",
    path: str = "/v1/ping",
    headers: dict[str, str] | None = None,
) -> Request:
    """Build a bare Starlette request with the given client address."""
    scope = {
        "type": "http",
        "method": "GET",
        "path": path,
        "headers": [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in (headers or {}).items()
        ],
        "query_string": b"",
        "client": (host, 51000) if host is not None else None,
    }
    return Request(scope)


@pytest.fixture
def request_factory():
    return make_request

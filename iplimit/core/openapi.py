"""OpenAPI metadata and customization utilities.

Enriches the generated schema with:
- Tags metadata
- A ``RateLimitRejection`` schema for the payload rate limited calls return
- An ``x-rate-limited`` marker on every operation the middleware counts

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from iplimit.core.config import parse_csv, settings
from iplimit.limiting.middleware import REJECTION_CODE

REJECTION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "description": (
        "Returned with HTTP 200 when the caller exceeded its admissions "
        "for the current window."
    ),
    "properties": {
        "code": {"type": "integer", "example": REJECTION_CODE},
        "msg": {
            "type": "string",
            "example": "Request too frequent, please try again in 42 seconds",
        },
        "data": {"type": "object"},
    },
    "required": ["code", "msg"],
}


def apply_openapi_customizations(app: FastAPI, *, rate_limited: bool) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata and rate limit docs.

    Args:
        app: Application to patch.
        rate_limited: Whether a limiter backed by a real store is mounted;
            false marks every operation as not rate limited.
    """

    original_openapi = app.openapi
    exempt_paths = parse_csv(settings.limit.exempt_paths)

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        schemas = components.setdefault("schemas", {})
        schemas.setdefault("RateLimitRejection", REJECTION_SCHEMA)

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {
                "name": "Ping",
                "description": "Sample protected operation, counted by the rate limiter.",
            },
            {
                "name": "Health",
                "description": "Liveness checks, never rate limited.",
            },
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj["x-rate-limited"] = rate_limited and path not in exempt_paths

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]

"""Admission control: limiter policies and their pipeline adapters."""

from iplimit.limiting.defaults import default_limit, default_policy
from iplimit.limiting.middleware import (
    RateLimitMiddleware,
    build_rejection_response,
    rate_limit_dependency,
)
from iplimit.limiting.policy import FixedWindowPolicy, LimiterPolicy, format_retry_message

__all__ = [
    "FixedWindowPolicy",
    "LimiterPolicy",
    "RateLimitMiddleware",
    "build_rejection_response",
    "default_limit",
    "default_policy",
    "format_retry_message",
    "rate_limit_dependency",
]

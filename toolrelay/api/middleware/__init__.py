"""API middleware."""

from toolrelay.api.middleware.context import RequestContextMiddleware
from toolrelay.api.middleware.rate_limit import (
    RateLimitMiddleware,
    RateLimitResult,
    SlidingWindowRateLimiter,
)

__all__ = [
    "RateLimitMiddleware",
    "RateLimitResult",
    "RequestContextMiddleware",
    "SlidingWindowRateLimiter",
]

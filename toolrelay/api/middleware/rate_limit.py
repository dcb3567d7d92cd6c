"""Rate limiting middleware for per-client request limits."""

import time
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from toolrelay.api.exceptions import RateLimitExceededError
from toolrelay.api.models.errors import ErrorBody, ErrorCode, ErrorResponse
from toolrelay.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RateLimitResult:
    """Outcome of a rate limit check."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: datetime


@dataclass
class RateLimitWindow:
    """Sliding window rate limit state."""

    requests: list[float] = field(default_factory=list)
    """Timestamps of requests within the window."""


class SlidingWindowRateLimiter:
    """In-memory sliding window rate limiter.

    Tracks request timestamps per key within the window; timestamps that
    fall outside it are pruned on each check.
    """

    def __init__(
        self,
        window_seconds: int = 900,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the rate limiter.

        Args:
            window_seconds: Size of the sliding window in seconds
            clock: Source of the current time in seconds
        """
        self._window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, RateLimitWindow] = defaultdict(RateLimitWindow)

    def check(self, key: str, limit: int) -> RateLimitResult:
        """Check if a request is allowed, recording it when it is."""
        now = self._clock()
        window_start = now - self._window_seconds
        window = self._windows[key]

        window.requests = [ts for ts in window.requests if ts > window_start]

        current_count = len(window.requests)
        remaining = max(0, limit - current_count)
        allowed = current_count < limit

        if window.requests:
            oldest = min(window.requests)
            reset_at = datetime.fromtimestamp(oldest + self._window_seconds, UTC)
        else:
            reset_at = datetime.fromtimestamp(now + self._window_seconds, UTC)

        if allowed:
            window.requests.append(now)

        return RateLimitResult(
            allowed=allowed,
            limit=limit,
            remaining=remaining - (1 if allowed else 0),
            reset_at=reset_at,
        )

    def reset(self, key: str) -> None:
        """Reset rate limit state for a key."""
        self._windows.pop(key, None)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Enforce a per-client request budget on API paths.

    Clients are keyed by remote address. Rejected requests get 429 with a
    Retry-After header; allowed ones carry X-RateLimit-* headers.
    """

    def __init__(
        self,
        app: Callable[..., Any],
        limiter: SlidingWindowRateLimiter,
        max_requests: int = 100,
        enabled: bool = True,
        path_prefix: str = "/api",
    ) -> None:
        super().__init__(app)
        self._limiter = limiter
        self._max_requests = max_requests
        self._enabled = enabled
        self._path_prefix = path_prefix

    async def dispatch(  # type: ignore[override]
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        """Process request with rate limiting."""
        if not self._enabled or not request.url.path.startswith(self._path_prefix):
            return await call_next(request)  # type: ignore[no-any-return, misc]

        client = request.client.host if request.client else "unknown"
        result = self._limiter.check(client, self._max_requests)

        if not result.allowed:
            retry_after = max(1, int(result.reset_at.timestamp() - time.time()))
            error = RateLimitExceededError(
                "Too many requests from this client, please try again later",
                context={"client": client, "retry_after_seconds": retry_after},
            )
            logger.warning("rate_limit_exceeded", client=client, limit=result.limit)
            body = ErrorResponse(
                error=ErrorBody(
                    code=ErrorCode.RATE_LIMIT_EXCEEDED,
                    message=error.detail,
                    context=error.context,
                )
            )
            return JSONResponse(
                status_code=error.status_code,
                content=body.model_dump(mode="json"),
                headers={"Retry-After": str(retry_after)},
            )

        response = await call_next(request)  # type: ignore[misc]

        response.headers["X-RateLimit-Limit"] = str(result.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        response.headers["X-RateLimit-Reset"] = str(int(result.reset_at.timestamp()))

        return response  # type: ignore[no-any-return]

"""Request context middleware.

Binds request_id, and thread/run identifiers when the caller sends them,
to structlog contextvars for the duration of each request.
"""

from collections.abc import Callable
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from structlog.contextvars import bind_contextvars, clear_contextvars

from toolrelay.observability.logging import get_logger

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind per-request logging context.

    Headers:
        X-Request-ID: Reused as request_id (generated when absent)
        X-Thread-ID: Thread identifier
        X-Run-ID: Run identifier
    """

    async def dispatch(  # type: ignore[override]
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        """Process request and bind logging context."""
        clear_contextvars()

        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        context = {"request_id": request_id}
        for header, key in (("X-Thread-ID", "thread_id"), ("X-Run-ID", "run_id")):
            value = request.headers.get(header)
            if value:
                context[key] = value
        bind_contextvars(**context)

        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)  # type: ignore[misc]

        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
        )
        response.headers["X-Request-ID"] = request_id

        return response  # type: ignore[no-any-return]

"""FastAPI application factory.

Creates and configures the FastAPI application with middleware,
exception handlers, lifespan management, and route registration.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from pydantic import ValidationError as PydanticValidationError

from toolrelay import __version__
from toolrelay.api.middleware.context import RequestContextMiddleware
from toolrelay.api.middleware.rate_limit import RateLimitMiddleware, SlidingWindowRateLimiter
from toolrelay.api.models.errors import ErrorBody, ErrorCode, ErrorDetail, ErrorResponse
from toolrelay.api.routes import register_routes
from toolrelay.bootstrap import Runtime, build_runtime
from toolrelay.config import get_settings
from toolrelay.config.settings import Settings
from toolrelay.errors import RelayError, ValidationError
from toolrelay.observability.logging import get_logger, setup_logging

logger = get_logger(__name__)


def create_app(settings: Settings | None = None, runtime: Runtime | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use (default: runtime.settings or get_settings())
        runtime: Prebuilt components (default: built from settings)

    Returns:
        Configured FastAPI application

    Raises:
        ConfigurationError: Unrecoverable startup misconfiguration
    """
    if settings is None:
        settings = runtime.settings if runtime is not None else get_settings()

    log_config = settings.observability.logging
    setup_logging(
        level=log_config.level,
        format=log_config.format,
        redact_secrets=log_config.redact_secrets,
    )

    if runtime is None:
        runtime = build_runtime(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if settings.sweeper.enabled:
            await runtime.sweeper.start()
        yield
        await runtime.aclose()
        logger.info("app_shutdown")

    app = FastAPI(
        title="toolrelay",
        description="Bridges assistant runs with externally executed tool calls",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.runtime = runtime

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=settings.api.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(RequestContextMiddleware)

    rate_limit = settings.api.rate_limit
    app.add_middleware(
        RateLimitMiddleware,
        limiter=SlidingWindowRateLimiter(window_seconds=rate_limit.window_seconds),
        max_requests=rate_limit.max_requests,
        enabled=rate_limit.enabled,
    )

    _register_exception_handlers(app)

    register_routes(app, settings)

    if settings.observability.tracing.enabled:
        FastAPIInstrumentor.instrument_app(app)
        logger.info("opentelemetry_instrumentation_enabled")

    logger.info(
        "app_created",
        environment=settings.environment,
        debug=settings.debug,
        provider_configured=runtime.provider_configured,
    )

    return app


def _error_response(
    status_code: int,
    code: ErrorCode,
    message: str,
    details: list[ErrorDetail] | None = None,
    context: dict | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorBody(code=code, message=message, details=details, context=context or None)
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def _register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
        """Handle RelayError and its subclasses."""
        logger.warning(
            "api_error",
            kind=exc.kind,
            message=exc.detail,
            path=request.url.path,
            context=exc.context,
        )

        details = None
        if isinstance(exc, ValidationError):
            details = [ErrorDetail(message=message) for message in exc.errors]

        return _error_response(
            exc.status_code,
            ErrorCode(exc.kind),
            exc.detail,
            details=details,
            context=exc.context,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle FastAPI request validation errors."""
        logger.warning(
            "request_validation_error",
            errors=exc.errors(),
            path=request.url.path,
        )

        details = [
            ErrorDetail(field=".".join(str(loc) for loc in error["loc"]), message=error["msg"])
            for error in exc.errors()
        ]
        return _error_response(
            400,
            ErrorCode.VALIDATION_ERROR,
            "Request validation failed",
            details=details,
        )

    @app.exception_handler(PydanticValidationError)
    async def pydantic_validation_error_handler(
        request: Request, exc: PydanticValidationError
    ) -> JSONResponse:
        """Handle Pydantic validation errors."""
        logger.warning(
            "pydantic_validation_error",
            errors=exc.errors(),
            path=request.url.path,
        )

        details = [
            ErrorDetail(field=".".join(str(loc) for loc in error["loc"]), message=error["msg"])
            for error in exc.errors()
        ]
        return _error_response(
            400,
            ErrorCode.VALIDATION_ERROR,
            "Data validation failed",
            details=details,
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception(
            "unexpected_error",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
        )
        return _error_response(
            500,
            ErrorCode.INTERNAL_ERROR,
            "An unexpected error occurred",
        )

    logger.debug("exception_handlers_registered")

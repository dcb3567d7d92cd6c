"""API route registration."""

from fastapi import APIRouter, FastAPI

from toolrelay.config.settings import Settings
from toolrelay.observability.logging import get_logger

logger = get_logger(__name__)


def create_api_router(settings: Settings) -> APIRouter:
    """Create the /api router.

    Debug routes are only included when settings.debug is on.
    """
    from toolrelay.api.routes.agents import router as agents_router
    from toolrelay.api.routes.pending import router as pending_router
    from toolrelay.api.routes.status import router as status_router
    from toolrelay.api.routes.turns import router as turns_router

    router = APIRouter(prefix="/api")
    router.include_router(turns_router, tags=["Turns"])
    router.include_router(pending_router, tags=["Pending"])
    router.include_router(agents_router, tags=["Agents"])
    router.include_router(status_router, tags=["Status"])

    if settings.debug:
        from toolrelay.api.routes.debug import router as debug_router

        router.include_router(debug_router, tags=["Debug"])
        logger.info("debug_routes_enabled")

    return router


def register_routes(app: FastAPI, settings: Settings) -> None:
    """Register all routes with the FastAPI application."""
    app.include_router(create_api_router(settings))

    from toolrelay.api.routes.health import metrics_router
    from toolrelay.api.routes.health import router as health_router

    app.include_router(health_router, tags=["Health"])
    if settings.observability.metrics.enabled:
        app.include_router(metrics_router, tags=["Health"])

    logger.info("routes_registered")

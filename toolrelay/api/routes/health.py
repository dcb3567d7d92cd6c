"""Health check and metrics endpoints."""

from typing import Literal

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from toolrelay import __version__
from toolrelay.api.dependencies import RuntimeDep
from toolrelay.api.models.health import ComponentHealth, HealthResponse
from toolrelay.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()
metrics_router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(runtime: RuntimeDep) -> HealthResponse:
    """Check service health status.

    The service is degraded when it runs without a conversation provider
    or when the sweeper should be running but is not.
    """
    pending = len(await runtime.store.list_all())
    components = [
        ComponentHealth(
            name="pending_store",
            status="healthy",
            message=f"{pending} pending call(s)",
        ),
        ComponentHealth(
            name="provider",
            status="healthy" if runtime.provider_configured else "degraded",
            message=None if runtime.provider_configured else "demo mode",
        ),
    ]
    if runtime.settings.sweeper.enabled:
        components.append(
            ComponentHealth(
                name="sweeper",
                status="healthy" if runtime.sweeper.running else "degraded",
                message=None if runtime.sweeper.running else "not running",
            )
        )

    overall: Literal["healthy", "degraded", "unhealthy"] = "healthy"
    if any(c.status == "unhealthy" for c in components):
        overall = "unhealthy"
    elif any(c.status == "degraded" for c in components):
        overall = "degraded"

    logger.debug("health_check_completed", status=overall)
    return HealthResponse(status=overall, version=__version__, components=components)


@metrics_router.get("/metrics")
async def get_metrics() -> Response:
    """Prometheus metrics in text format for scraping."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

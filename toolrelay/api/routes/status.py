"""Service status overview."""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from toolrelay import __version__
from toolrelay.api.dependencies import RuntimeDep
from toolrelay.pending.stats import compute_statistics

router = APIRouter()


@router.get("/status")
async def status(runtime: RuntimeDep) -> dict[str, Any]:
    """Agents, pending calls and provider configuration at a glance."""
    settings = runtime.settings
    calls = sorted(await runtime.store.list_all(), key=lambda c: c.created_at)
    stats = compute_statistics(calls, runtime.registry, settings.dispatch)
    last_sweep = runtime.sweeper.last_report

    return {
        "status": "ok",
        "version": __version__,
        "environment": settings.environment,
        "provider": {
            "kind": settings.provider.kind,
            "configured": runtime.provider_configured,
        },
        "agents": runtime.registry.describe(),
        "pending": {
            "count": len(calls),
            "calls": [call.model_dump(mode="json") for call in calls],
        },
        "statistics": stats.model_dump(mode="json"),
        "sweeper": {
            "enabled": settings.sweeper.enabled,
            "running": runtime.sweeper.running,
            "last_sweep": last_sweep.model_dump(mode="json") if last_sweep else None,
        },
        "timestamp": datetime.now(UTC).isoformat(),
    }

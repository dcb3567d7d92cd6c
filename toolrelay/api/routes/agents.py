"""Agent introspection and endpoint health probes."""

from typing import Any

from fastapi import APIRouter

from toolrelay.api.dependencies import RuntimeDep
from toolrelay.api.exceptions import NotFoundError
from toolrelay.dispatch.models import ProbeResult

router = APIRouter(prefix="/agents")


@router.get("")
async def list_agents(runtime: RuntimeDep) -> dict[str, Any]:
    return {"agents": runtime.registry.describe()}


@router.get("/health")
async def agents_health(runtime: RuntimeDep) -> dict[str, Any]:
    """Probe every agent's delivery endpoint."""
    results = await runtime.dispatcher.probe_all()
    return {
        "healthy": sum(1 for r in results.values() if r.status == "healthy"),
        "total": len(results),
        "agents": {agent_id: r.model_dump(mode="json") for agent_id, r in results.items()},
    }


@router.get("/{agent_id}/health", response_model=ProbeResult)
async def agent_health(agent_id: str, runtime: RuntimeDep) -> ProbeResult:
    if agent_id not in runtime.registry:
        raise NotFoundError(f"Unknown agent: {agent_id}", context={"agent_id": agent_id})
    return await runtime.dispatcher.probe(agent_id)

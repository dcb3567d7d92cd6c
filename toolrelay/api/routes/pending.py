"""Pending-call introspection and redelivery endpoints."""

from typing import Any

from fastapi import APIRouter

from toolrelay.api.dependencies import RuntimeDep
from toolrelay.api.exceptions import NotFoundError
from toolrelay.dispatch.models import DeliveryResult
from toolrelay.pending.models import PendingCall
from toolrelay.pending.stats import PendingStatistics, compute_statistics

router = APIRouter(prefix="/pending")


@router.get("")
async def list_pending(runtime: RuntimeDep) -> dict[str, Any]:
    """List every pending call, oldest first."""
    calls = sorted(await runtime.store.list_all(), key=lambda c: c.created_at)
    return {
        "count": len(calls),
        "pending_calls": [call.model_dump(mode="json") for call in calls],
    }


@router.get("/statistics", response_model=PendingStatistics)
async def pending_statistics(runtime: RuntimeDep) -> PendingStatistics:
    """Counts of pending calls by agent, status and age."""
    return compute_statistics(
        await runtime.store.list_all(),
        runtime.registry,
        runtime.settings.dispatch,
    )


@router.get("/archived")
async def archived_calls(runtime: RuntimeDep) -> dict[str, Any]:
    """Failed calls removed by the sweeper, and the last sweep report."""
    archived = runtime.sweeper.archived
    last = runtime.sweeper.last_report
    return {
        "count": len(archived),
        "archived": [call.model_dump(mode="json") for call in archived],
        "last_sweep": last.model_dump(mode="json") if last else None,
    }


@router.get("/{tool_call_id}", response_model=PendingCall)
async def get_pending(tool_call_id: str, runtime: RuntimeDep) -> PendingCall:
    call = await runtime.store.get(tool_call_id)
    if call is None:
        raise NotFoundError(
            f"No pending call with id {tool_call_id}",
            context={"tool_call_id": tool_call_id},
        )
    return call


@router.post("/{tool_call_id}/redeliver", response_model=DeliveryResult)
async def redeliver_pending(tool_call_id: str, runtime: RuntimeDep) -> DeliveryResult:
    """Retry delivery of a call whose attempts were exhausted."""
    call = await runtime.store.get(tool_call_id)
    if call is None:
        raise NotFoundError(
            f"No pending call with id {tool_call_id}",
            context={"tool_call_id": tool_call_id},
        )
    return await runtime.dispatcher.redeliver(call)

"""Debug-only endpoints. Registered when settings.debug is on."""

from fastapi import APIRouter

from toolrelay.api.dependencies import OrchestratorDep, RuntimeDep
from toolrelay.api.exceptions import NotFoundError
from toolrelay.api.models.requests import SimulateToolResultRequest
from toolrelay.observability.logging import get_logger
from toolrelay.orchestration.models import TurnOutcome

logger = get_logger(__name__)

router = APIRouter(prefix="/debug")


@router.post("/simulate-tool-result", response_model=TurnOutcome)
async def simulate_tool_result(
    runtime: RuntimeDep,
    orchestrator: OrchestratorDep,
    body: SimulateToolResultRequest | None = None,
) -> TurnOutcome:
    """Resolve a pending call through the normal resume path.

    Uses the requested call, or the oldest pending one, and a synthetic
    output unless one is given.
    """
    body = body or SimulateToolResultRequest()
    calls = sorted(await runtime.store.list_all(), key=lambda c: c.created_at)
    if body.tool_call_id is not None:
        calls = [c for c in calls if c.id == body.tool_call_id]
    if not calls:
        raise NotFoundError(
            "No pending call to resolve",
            context={"tool_call_id": body.tool_call_id},
        )

    call = calls[0]
    output = body.output
    if output is None:
        output = {
            "status": "success",
            "simulated": True,
            "function_name": call.function_name,
            "arguments": call.arguments,
        }

    logger.info("tool_result_simulated", tool_call_id=call.id, thread_id=call.thread_id)
    return await orchestrator.resume_with_result({
        "tool_call_id": call.id,
        "output": output,
        "thread_id": call.thread_id,
        "run_id": call.run_id,
    })

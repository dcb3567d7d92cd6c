"""Turn and tool-result endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from toolrelay.api.dependencies import OrchestratorDep, SettingsDep
from toolrelay.api.models.requests import AskRequest
from toolrelay.errors import ValidationError
from toolrelay.observability.logging import get_logger
from toolrelay.orchestration.models import TurnOutcome, TurnStatus

logger = get_logger(__name__)

router = APIRouter()

# Outcomes that are not a plain 200
_STATUS_CODES = {
    TurnStatus.BUSY: 409,
    TurnStatus.DISPATCH_UNAVAILABLE: 503,
}


@router.post("/ask", response_model=TurnOutcome)
async def ask(
    body: AskRequest,
    orchestrator: OrchestratorDep,
    settings: SettingsDep,
) -> JSONResponse:
    """Send a user message to an agent.

    Runs the turn until the assistant answers or pauses for tool calls,
    which are dispatched before returning. A thread with an active run
    yields 409; tool calls an agent cannot execute yield 503 and are
    listed in the response.
    """
    message = body.message.strip()
    max_length = settings.api.max_message_length
    errors = []
    if not message:
        errors.append("message must not be blank")
    if len(body.message) > max_length:
        errors.append(f"message must be at most {max_length} characters")
    if errors:
        raise ValidationError(
            errors, context={"agent_id": body.agent_id, "thread_id": body.thread_id}
        )

    outcome = await orchestrator.start_turn(message, body.agent_id, body.thread_id)
    return JSONResponse(
        status_code=_STATUS_CODES.get(outcome.status, 200),
        content=outcome.model_dump(mode="json"),
    )


@router.post("/webhook-response", response_model=TurnOutcome)
async def webhook_response(
    payload: Annotated[dict[str, Any], Body()],
    orchestrator: OrchestratorDep,
) -> TurnOutcome:
    """Receive an asynchronous tool result and resume its run.

    Body fields: tool_call_id (or id), output, thread_id, run_id.
    """
    logger.info(
        "tool_result_received",
        tool_call_id=payload.get("tool_call_id") or payload.get("id"),
        thread_id=payload.get("thread_id"),
        run_id=payload.get("run_id"),
    )
    return await orchestrator.resume_with_result(payload)

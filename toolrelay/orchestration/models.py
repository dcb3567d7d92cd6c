"""Turn outcome models."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from toolrelay.dispatch.models import DeliveryResult
from toolrelay.providers.models import ToolCall


class TurnStatus(str, Enum):
    """Where a turn or resumption ended up."""

    COMPLETED = "completed"
    REQUIRES_ACTION = "requires_action"
    BUSY = "busy"
    DISPATCH_UNAVAILABLE = "dispatch_unavailable"
    AWAITING_RESULTS = "awaiting_results"
    PROCESSING = "processing"
    FAILED = "failed"


class TurnOutcome(BaseModel):
    """Result of RunOrchestrator.start_turn or resume_with_result."""

    status: TurnStatus
    message: str | None = None
    thread_id: str | None = None
    run_id: str | None = None
    run_status: str | None = None
    agent_id: str | None = None
    agent_name: str | None = None
    tool_call_id: str | None = Field(
        default=None, description="Tool call whose result triggered a resumption"
    )
    correlated: bool | None = None
    tool_calls: list[ToolCall] = Field(default_factory=list)
    dispatch_results: list[DeliveryResult] = Field(default_factory=list)
    pending_count: int | None = Field(
        default=None, description="Outstanding tool calls for the run"
    )
    error: dict[str, Any] | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

"""Delivery payload and result models."""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


class DeliveryPayload(BaseModel):
    """JSON body sent to an external executor for one tool call."""

    tool_call_id: str
    function_name: str
    arguments: dict[str, Any]
    thread_id: str
    run_id: str
    agent_id: str
    agent_name: str | None = None
    agent_role: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    TERMINAL_FAILURE = "terminal_failure"


@dataclass(frozen=True)
class DeliveryAttempt:
    """One send of a payload. Never persisted."""

    attempt: int
    endpoint: str
    outcome: AttemptOutcome
    delay_ms: int = 0
    status_code: int | None = None
    response: Any = None
    error: str | None = None
    response_time_ms: int = 0


class DeliveryResult(BaseModel):
    """Per-call dispatch outcome returned to the orchestrator."""

    tool_call_id: str
    function_name: str | None = None
    agent_id: str
    agent_name: str | None = None
    endpoint: str | None = None
    status: Literal["sent", "error"]
    attempts: int = 0
    status_code: int | None = None
    response: Any = None
    error: str | None = None
    retryable: bool = False
    response_time_ms: int | None = None

    @property
    def sent(self) -> bool:
        return self.status == "sent"


ProbeStatus = Literal["healthy", "unhealthy", "not_configured"]


class ProbeResult(BaseModel):
    """Reachability of an agent's delivery endpoint."""

    agent_id: str
    agent_name: str | None = None
    status: ProbeStatus
    reachable: bool = False
    status_code: int | None = None
    response_time_ms: int | None = None
    error: str | None = None
    checked_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

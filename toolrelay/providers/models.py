"""Provider-neutral run, tool call and message models."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class RunStatus(str, Enum):
    """Run states reported by a conversation provider."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    CANCELLING = "cancelling"
    COMPLETED = "completed"
    FAILED = "failed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    INCOMPLETE = "incomplete"
    UNKNOWN = "unknown"  # Polling gave up before the run settled

    @classmethod
    def parse(cls, value: str | None) -> "RunStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_active(self) -> bool:
        """Whether the run still occupies its thread."""
        return self in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_failure(self) -> bool:
        return self in FAILURE_STATUSES


ACTIVE_STATUSES = frozenset({
    RunStatus.QUEUED,
    RunStatus.IN_PROGRESS,
    RunStatus.REQUIRES_ACTION,
    RunStatus.CANCELLING,
})

FAILURE_STATUSES = frozenset({
    RunStatus.FAILED,
    RunStatus.EXPIRED,
    RunStatus.CANCELLED,
    RunStatus.INCOMPLETE,
})

TERMINAL_STATUSES = FAILURE_STATUSES | {RunStatus.COMPLETED}

# Polling stops on any of these
SETTLED_STATUSES = TERMINAL_STATUSES | {RunStatus.REQUIRES_ACTION}


class ToolCall(BaseModel):
    """A function call requested by a paused run."""

    id: str = Field(..., description="Provider tool call id")
    function_name: str = Field(..., description="Function to execute")
    arguments: str = Field(default="{}", description="Raw JSON-encoded arguments")


class Run(BaseModel):
    """Snapshot of a run."""

    id: str
    thread_id: str
    status: RunStatus
    tool_calls: list[ToolCall] = Field(default_factory=list)
    last_error: str | None = None


class AssistantMessage(BaseModel):
    """Text produced by the assistant."""

    id: str
    content: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ToolOutput(BaseModel):
    """One tool output to submit back to a paused run."""

    tool_call_id: str
    output: str

"""Correlation outcome model."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field

UNKNOWN_AGENT = "unknown"


class CorrelatedOutcome(BaseModel):
    """A validated, normalized tool result and the context it resolved to."""

    tool_call_id: str
    output: str
    thread_id: str
    run_id: str
    agent_id: str = UNKNOWN_AGENT
    agent_name: str | None = None
    function_name: str | None = None
    correlated: bool = Field(description="False when no pending call was found")
    output_size: int
    truncated: bool = False
    processed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

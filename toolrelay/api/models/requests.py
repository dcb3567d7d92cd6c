"""Request bodies."""

from typing import Any

from pydantic import BaseModel, Field


class AskRequest(BaseModel):
    """A user message for an agent."""

    message: str = Field(..., min_length=1, description="User message")
    agent_id: str = Field(..., min_length=1, description="Agent to talk to")
    thread_id: str | None = Field(default=None, description="Existing thread to continue")


class SimulateToolResultRequest(BaseModel):
    """Resolve a pending call with a synthetic output (debug only)."""

    tool_call_id: str | None = Field(
        default=None, description="Pending call to resolve; oldest when omitted"
    )
    output: Any = Field(default=None, description="Output to report")

"""Conversation provider configuration models."""

from typing import Literal

from pydantic import BaseModel, Field, SecretStr

ProviderKind = Literal["openai", "mock"]


class PollConfig(BaseModel):
    """How long to poll a run before giving up with status unknown."""

    max_attempts: int = Field(default=45, gt=0, description="Status checks before giving up")
    interval_seconds: float = Field(default=2.0, ge=0, description="Wait between checks")


class ProviderConfig(BaseModel):
    """Conversation provider configuration."""

    kind: ProviderKind = Field(default="openai", description="Provider implementation")
    api_key: SecretStr | None = Field(
        default=None,
        description="API key (falls back to OPENAI_API_KEY)",
    )
    base_url: str | None = Field(default=None, description="Custom API base URL")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Per-request timeout")
    poll: PollConfig = Field(default_factory=PollConfig, description="Polling after a new run")
    resume_poll: PollConfig = Field(
        default_factory=lambda: PollConfig(max_attempts=90, interval_seconds=2.0),
        description="Polling after tool outputs are submitted",
    )

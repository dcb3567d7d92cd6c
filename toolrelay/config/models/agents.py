"""Agent configuration models."""

from pydantic import BaseModel, Field

PLACEHOLDER_MARKER = "placeholder"


def is_placeholder(value: str | None) -> bool:
    """True when a configured identifier or URL is missing or a placeholder."""
    return not value or PLACEHOLDER_MARKER in value


class AgentConfig(BaseModel):
    """An agent: which assistant answers its turns and where its tool calls go."""

    name: str = Field(description="Agent display name")
    role: str | None = Field(default=None, description="Short role description")
    specialty: str | None = Field(default=None, description="Longer specialty description")
    assistant_id: str = Field(description="Provider assistant identifier")
    webhook_url: str | None = Field(
        default=None,
        description="External executor endpoint for this agent's tool calls",
    )

    @property
    def assistant_configured(self) -> bool:
        return not is_placeholder(self.assistant_id)

    @property
    def webhook_configured(self) -> bool:
        return not is_placeholder(self.webhook_url)

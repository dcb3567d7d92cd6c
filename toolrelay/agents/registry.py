"""Agent registry: maps an agent id to its assistant and delivery endpoint."""

from collections.abc import Iterator, Mapping
from typing import Any

from toolrelay.config.models import AgentConfig
from toolrelay.errors import ConfigurationError


class AgentRegistry:
    """Read-only view over the configured agents."""

    def __init__(self, agents: Mapping[str, AgentConfig]) -> None:
        self._agents = dict(agents)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._agents

    def __len__(self) -> int:
        return len(self._agents)

    def ids(self) -> list[str]:
        return list(self._agents)

    def items(self) -> Iterator[tuple[str, AgentConfig]]:
        return iter(self._agents.items())

    def get(self, agent_id: str) -> AgentConfig:
        """Get an agent by id.

        Raises:
            ConfigurationError: If the agent is not configured
        """
        agent = self._agents.get(agent_id)
        if agent is None:
            raise ConfigurationError(
                f"Unknown agent: {agent_id}",
                context={"agent_id": agent_id, "available": self.ids()},
            )
        return agent

    def assistant_id_for(self, agent_id: str) -> str:
        agent = self.get(agent_id)
        if not agent.assistant_configured:
            raise ConfigurationError(
                f"{agent.name} is not connected yet",
                context={"agent_id": agent_id},
            )
        return agent.assistant_id

    def endpoint_for(self, agent_id: str) -> str:
        """Resolve the delivery endpoint for an agent's tool calls.

        Raises:
            ConfigurationError: If the agent is unknown or its endpoint is
                missing or a placeholder
        """
        agent = self.get(agent_id)
        if not agent.webhook_configured:
            raise ConfigurationError(
                f"No webhook configured for {agent.name}",
                context={"agent_id": agent_id},
            )
        return agent.webhook_url  # type: ignore[return-value]

    def has_endpoint(self, agent_id: str) -> bool:
        agent = self._agents.get(agent_id)
        return agent is not None and agent.webhook_configured

    def describe(self) -> dict[str, dict[str, Any]]:
        """Per-agent summary for introspection endpoints."""
        return {
            agent_id: {
                "name": agent.name,
                "role": agent.role,
                "specialty": agent.specialty,
                "assistant_configured": agent.assistant_configured,
                "webhook_configured": agent.webhook_configured,
            }
            for agent_id, agent in self._agents.items()
        }

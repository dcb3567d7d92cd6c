"""Agent registry."""

from toolrelay.agents.registry import AgentRegistry

__all__ = ["AgentRegistry"]

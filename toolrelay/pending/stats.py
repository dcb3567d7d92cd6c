"""Aggregate statistics over pending calls."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from toolrelay.agents.registry import AgentRegistry
from toolrelay.config.models import DispatchConfig
from toolrelay.pending.models import PendingCall


class AgeBuckets(BaseModel):
    under_1min: int = 0
    under_5min: int = 0
    under_30min: int = 0
    over_30min: int = 0


class AgentPendingSummary(BaseModel):
    name: str
    role: str | None = None
    webhook_configured: bool
    pending_calls: int = 0


class PendingStatistics(BaseModel):
    """Counts of pending calls by agent, status and age."""

    total_pending: int
    pending_by_agent: dict[str, int] = Field(default_factory=dict)
    pending_by_status: dict[str, int] = Field(default_factory=dict)
    pending_by_age: AgeBuckets = Field(default_factory=AgeBuckets)
    oldest_call_age_seconds: float = 0.0
    agents: dict[str, AgentPendingSummary] = Field(default_factory=dict)
    retry_policy: dict[str, int] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


def compute_statistics(
    calls: list[PendingCall],
    registry: AgentRegistry,
    dispatch: DispatchConfig,
    now: datetime | None = None,
) -> PendingStatistics:
    """Summarize a snapshot of pending calls."""
    now = now or datetime.now(UTC)

    agents = {
        agent_id: AgentPendingSummary(
            name=agent.name,
            role=agent.role,
            webhook_configured=agent.webhook_configured,
        )
        for agent_id, agent in registry.items()
    }
    stats = PendingStatistics(
        total_pending=len(calls),
        pending_by_agent={agent_id: 0 for agent_id in agents},
        agents=agents,
        retry_policy={
            "max_attempts": dispatch.max_attempts,
            "base_delay_ms": dispatch.base_delay_ms,
            "max_delay_ms": dispatch.max_delay_ms,
        },
        timestamp=now,
    )

    for call in calls:
        stats.pending_by_agent[call.agent_id] = stats.pending_by_agent.get(call.agent_id, 0) + 1
        if call.agent_id in stats.agents:
            stats.agents[call.agent_id].pending_calls += 1

        status = call.status.value
        stats.pending_by_status[status] = stats.pending_by_status.get(status, 0) + 1

        age = call.age_seconds(now)
        if age < 60:
            stats.pending_by_age.under_1min += 1
        elif age < 300:
            stats.pending_by_age.under_5min += 1
        elif age < 1800:
            stats.pending_by_age.under_30min += 1
        else:
            stats.pending_by_age.over_30min += 1

        stats.oldest_call_age_seconds = max(stats.oldest_call_age_seconds, age)

    return stats

"""Pending-call models."""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PendingCallStatus(str, Enum):
    """Lifecycle states of a pending tool call."""

    PENDING = "pending"
    FAILED = "failed"  # Delivery attempts exhausted; kept for inspection
    PROCESSED = "processed"  # Result correlated; removed right after


class PendingCall(BaseModel):
    """One outstanding tool-call request awaiting its asynchronous result.

    Keyed by the provider-assigned tool call id. The (thread_id, run_id)
    pair is fixed at creation and is what inbound results are checked
    against.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(min_length=1, description="Provider tool call id")
    thread_id: str = Field(frozen=True, description="Thread the call belongs to")
    run_id: str = Field(frozen=True, description="Run the call belongs to")
    agent_id: str = Field(description="Agent whose executor owns the call")
    agent_name: str | None = None
    function_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    endpoint: str | None = Field(default=None, description="Delivery endpoint")

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    retry_count: int = Field(default=0, ge=0)
    status: PendingCallStatus = PendingCallStatus.PENDING
    last_error: str | None = None
    last_attempt_at: datetime | None = None
    failed_at: datetime | None = None

    def age_seconds(self, now: datetime | None = None) -> float:
        """Seconds elapsed since the call was created."""
        return ((now or datetime.now(UTC)) - self.created_at).total_seconds()


# Fields the dispatch engine may change after creation
MUTABLE_FIELDS: frozenset[str] = frozenset({
    "retry_count",
    "status",
    "last_error",
    "last_attempt_at",
    "failed_at",
})


class ClaimStatus(str, Enum):
    """Outcome of claiming a pending call for correlation."""

    CLAIMED = "claimed"
    NOT_FOUND = "not_found"
    ALREADY_PROCESSED = "already_processed"


@dataclass(frozen=True)
class Claim:
    """Result of PendingCallStore.claim."""

    status: ClaimStatus
    call: PendingCall | None = None

    @property
    def claimed(self) -> bool:
        return self.status == ClaimStatus.CLAIMED

"""Run lifecycle orchestration."""

from toolrelay.orchestration.models import TurnOutcome, TurnStatus
from toolrelay.orchestration.orchestrator import RunOrchestrator
from toolrelay.orchestration.retry import retry_step

__all__ = ["RunOrchestrator", "TurnOutcome", "TurnStatus", "retry_step"]

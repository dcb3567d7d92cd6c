"""Tool-call dispatch engine."""

from toolrelay.dispatch.backoff import compute_backoff
from toolrelay.dispatch.engine import DispatchEngine
from toolrelay.dispatch.models import (
    AttemptOutcome,
    DeliveryAttempt,
    DeliveryPayload,
    DeliveryResult,
    ProbeResult,
)

__all__ = [
    "AttemptOutcome",
    "DeliveryAttempt",
    "DeliveryPayload",
    "DeliveryResult",
    "DispatchEngine",
    "ProbeResult",
    "compute_backoff",
]

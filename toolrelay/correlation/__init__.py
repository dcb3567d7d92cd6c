"""Tool result correlation."""

from toolrelay.correlation.models import UNKNOWN_AGENT, CorrelatedOutcome
from toolrelay.correlation.normalize import normalize_output, truncate_output
from toolrelay.correlation.outbox import ResultOutbox
from toolrelay.correlation.protocol import CorrelationProtocol, validate_result

__all__ = [
    "UNKNOWN_AGENT",
    "CorrelatedOutcome",
    "CorrelationProtocol",
    "ResultOutbox",
    "normalize_output",
    "truncate_output",
    "validate_result",
]

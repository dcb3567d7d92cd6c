"""Prometheus metrics for toolrelay."""

from prometheus_client import Counter, Gauge, Histogram

# Delivery metrics
DELIVERY_ATTEMPTS = Counter(
    "toolrelay_delivery_attempts_total",
    "Tool-call delivery attempts",
    labelnames=["agent_id", "outcome"],
)

DELIVERY_LATENCY = Histogram(
    "toolrelay_delivery_latency_seconds",
    "Latency of a single delivery attempt",
    labelnames=["agent_id"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

# Correlation metrics
CORRELATIONS = Counter(
    "toolrelay_correlations_total",
    "Inbound tool results by correlation outcome",
    labelnames=["outcome"],
)

# Provider metrics
PROVIDER_RETRIES = Counter(
    "toolrelay_provider_retries_total",
    "Provider step retries after a transient failure",
    labelnames=["step"],
)

# Turn metrics
TURNS = Counter(
    "toolrelay_turns_total",
    "Orchestrated turns and resumptions by outcome",
    labelnames=["phase", "status"],
)

# Store metrics
PENDING_CALLS = Gauge(
    "toolrelay_pending_calls",
    "Tool calls currently held in the pending-call store",
)

SWEEP_EVICTIONS = Counter(
    "toolrelay_sweep_evictions_total",
    "Pending calls removed by the cleanup sweeper",
    labelnames=["reason"],
)

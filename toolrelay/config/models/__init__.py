"""Configuration model exports."""

from toolrelay.config.models.agents import AgentConfig, is_placeholder
from toolrelay.config.models.api import APIConfig, RateLimitConfig
from toolrelay.config.models.correlation import CorrelationConfig
from toolrelay.config.models.dispatch import DispatchConfig
from toolrelay.config.models.observability import (
    LoggingConfig,
    MetricsConfig,
    ObservabilityConfig,
    TracingConfig,
)
from toolrelay.config.models.orchestration import OrchestrationConfig, StepRetryConfig
from toolrelay.config.models.provider import PollConfig, ProviderConfig
from toolrelay.config.models.sweeper import SweeperConfig

__all__ = [
    "AgentConfig",
    "APIConfig",
    "CorrelationConfig",
    "DispatchConfig",
    "LoggingConfig",
    "MetricsConfig",
    "ObservabilityConfig",
    "OrchestrationConfig",
    "PollConfig",
    "ProviderConfig",
    "RateLimitConfig",
    "StepRetryConfig",
    "SweeperConfig",
    "TracingConfig",
    "is_placeholder",
]

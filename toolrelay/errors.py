"""Error taxonomy for the relay.

Every error raised by a relay component inherits from RelayError, which
carries a machine-readable kind, a human-readable detail, the HTTP status
used by the API layer, and the correlation context (tool call, thread,
run, agent) known at the point of failure.
"""

from typing import Any


class RelayError(Exception):
    """Base exception for all relay errors."""

    kind: str = "internal_error"
    status_code: int = 500

    def __init__(self, detail: str, *, context: dict[str, Any] | None = None) -> None:
        self.detail = detail
        self.context: dict[str, Any] = dict(context or {})
        super().__init__(detail)

    def add_context(self, **context: Any) -> "RelayError":
        """Add correlation identifiers without overwriting existing ones."""
        for key, value in context.items():
            if value is not None and self.context.get(key) is None:
                self.context[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "detail": self.detail, "context": self.context}


class ConfigurationError(RelayError):
    """Unresolvable or unusable agent, endpoint or provider configuration."""

    kind = "configuration_error"
    status_code = 503


class ValidationError(RelayError):
    """Malformed inbound payload. Lists every problem found."""

    kind = "validation_error"
    status_code = 400

    def __init__(
        self,
        errors: list[str],
        *,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.errors = list(errors)
        super().__init__(
            "Validation failed: " + ", ".join(self.errors),
            context=context,
        )


class CorrelationError(RelayError):
    """Inbound result does not match the stored thread/run for its call."""

    kind = "correlation_error"
    status_code = 409


class DuplicateResultError(CorrelationError):
    """Result for a tool call that has already been correlated."""

    kind = "duplicate_result"


class DeliveryError(RelayError):
    """Delivery to an external executor failed."""

    kind = "delivery_error"
    status_code = 502


class ProviderError(RelayError):
    """Conversation provider call failed."""

    kind = "provider_error"
    status_code = 502

    def __init__(
        self,
        detail: str,
        *,
        retryable: bool = True,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(detail, context=context)
        self.retryable = retryable


class RunActiveError(ProviderError):
    """The thread already has an active run; retrying cannot help."""

    kind = "run_active"
    status_code = 409

    def __init__(self, detail: str, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(detail, retryable=False, context=context)


class ProcessingError(RelayError):
    """Tool output is unusable after normalization."""

    kind = "processing_error"
    status_code = 422

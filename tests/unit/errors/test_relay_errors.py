"""Tests for the relay error taxonomy."""

from toolrelay.errors import (
    CorrelationError,
    DuplicateResultError,
    ProviderError,
    RelayError,
    RunActiveError,
    ValidationError,
)


class TestRelayError:
    def test_add_context_keeps_existing_values(self) -> None:
        error = RelayError("boom", context={"thread_id": "t1", "run_id": None})

        error.add_context(thread_id="t2", run_id="r1", agent_id=None)

        assert error.context == {"thread_id": "t1", "run_id": "r1"}

    def test_to_dict(self) -> None:
        error = CorrelationError("mismatch", context={"tool_call_id": "c1"})

        assert error.to_dict() == {
            "kind": "correlation_error",
            "detail": "mismatch",
            "context": {"tool_call_id": "c1"},
        }

    def test_validation_error_lists_problems(self) -> None:
        error = ValidationError(["output is required", "run_id is required"])

        assert error.status_code == 400
        assert error.detail == (
            "Validation failed: output is required, run_id is required"
        )

    def test_hierarchy(self) -> None:
        assert isinstance(DuplicateResultError("dup"), CorrelationError)
        assert DuplicateResultError.kind == "duplicate_result"
        assert RunActiveError("busy").retryable is False
        assert ProviderError("blip").retryable is True

"""Tests for CorrelationProtocol."""

import asyncio

import pytest

from toolrelay.config.models import CorrelationConfig
from toolrelay.correlation.models import UNKNOWN_AGENT
from toolrelay.correlation.protocol import CorrelationProtocol, validate_result
from toolrelay.errors import (
    CorrelationError,
    DuplicateResultError,
    ProcessingError,
    ValidationError,
)


def _result(**overrides):
    values = {
        "tool_call_id": "call_1",
        "output": {"leads": 12},
        "thread_id": "thread_1",
        "run_id": "run_1",
    }
    values.update(overrides)
    return values


@pytest.fixture
def protocol(store) -> CorrelationProtocol:
    return CorrelationProtocol(store, CorrelationConfig())


class TestValidateResult:
    def test_valid(self) -> None:
        assert validate_result(_result()) == ("call_1", {"leads": 12}, "thread_1", "run_1")

    def test_id_alias(self) -> None:
        raw = _result()
        raw["id"] = raw.pop("tool_call_id")

        assert validate_result(raw)[0] == "call_1"

    def test_lists_every_problem(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_result({"thread_id": 5, "run_id": "  "})

        assert exc_info.value.errors == [
            "tool_call_id is required",
            "output is required",
            "thread_id must be a string",
            "run_id must not be empty",
        ]

    def test_non_mapping(self) -> None:
        with pytest.raises(ValidationError, match="payload must be an object"):
            validate_result(["not", "a", "dict"])


class TestCorrelate:
    """Tests for correlate."""

    async def test_matched_result_claims_pending_call(self, protocol, store, make_call) -> None:
        await store.put(make_call())

        outcome = await protocol.correlate(_result())

        assert outcome.correlated
        assert outcome.agent_id == "brenden"
        assert outcome.function_name == "scrape_leads"
        assert '"leads": 12' in outcome.output
        assert outcome.output_size == len(outcome.output)
        assert await store.get("call_1") is None

    async def test_mismatch_leaves_store_unchanged(self, protocol, store, make_call) -> None:
        await store.put(make_call())

        with pytest.raises(CorrelationError) as exc_info:
            await protocol.correlate(_result(run_id="run_other"))

        assert exc_info.value.context["expected_run_id"] == "run_1"
        assert not isinstance(exc_info.value, DuplicateResultError)
        stored = await store.get("call_1")
        assert stored is not None
        assert stored.retry_count == 0
        assert not await store.was_processed("call_1")

    async def test_validation_failure_mutates_nothing(self, protocol, store, make_call) -> None:
        await store.put(make_call())

        with pytest.raises(ValidationError):
            await protocol.correlate({"tool_call_id": "call_1"})

        assert await store.get("call_1") is not None

    async def test_empty_output_is_processing_error(self, protocol, store, make_call) -> None:
        await store.put(make_call())

        with pytest.raises(ProcessingError) as exc_info:
            await protocol.correlate(_result(output="   "))

        assert exc_info.value.context["tool_call_id"] == "call_1"
        assert await store.get("call_1") is not None

    async def test_duplicate_rejected(self, protocol, store, make_call) -> None:
        await store.put(make_call())
        await protocol.correlate(_result())

        with pytest.raises(DuplicateResultError):
            await protocol.correlate(_result())

    async def test_concurrent_results_correlate_once(self, protocol, store, make_call) -> None:
        await store.put(make_call())

        outcomes = await asyncio.gather(
            protocol.correlate(_result()),
            protocol.correlate(_result()),
            return_exceptions=True,
        )

        successes = [o for o in outcomes if not isinstance(o, Exception)]
        failures = [o for o in outcomes if isinstance(o, Exception)]
        assert len(successes) == 1
        assert len(failures) == 1
        assert isinstance(failures[0], DuplicateResultError)

    async def test_uncorrelated_accepted_in_degraded_mode(self, protocol) -> None:
        outcome = await protocol.correlate(_result(tool_call_id="unknown_call"))

        assert not outcome.correlated
        assert outcome.agent_id == UNKNOWN_AGENT
        assert outcome.thread_id == "thread_1"

    async def test_uncorrelated_rejected_when_strict(self, store) -> None:
        protocol = CorrelationProtocol(store, CorrelationConfig(accept_uncorrelated=False))

        with pytest.raises(CorrelationError, match="No pending call"):
            await protocol.correlate(_result(tool_call_id="unknown_call"))

    async def test_large_output_truncated(self, store, make_call) -> None:
        protocol = CorrelationProtocol(
            store, CorrelationConfig(max_output_chars=10, truncation_marker="[cut]")
        )
        await store.put(make_call())

        outcome = await protocol.correlate(_result(output="x" * 50))

        assert outcome.truncated
        assert outcome.output == "x" * 10 + "[cut]"

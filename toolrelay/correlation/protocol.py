"""Validation and correlation of asynchronous tool results."""

from collections.abc import Mapping
from typing import Any

from toolrelay.config.models import CorrelationConfig
from toolrelay.correlation.models import CorrelatedOutcome
from toolrelay.correlation.normalize import normalize_output, truncate_output
from toolrelay.errors import (
    CorrelationError,
    DuplicateResultError,
    ProcessingError,
    ValidationError,
)
from toolrelay.observability.logging import get_logger
from toolrelay.observability.metrics import CORRELATIONS
from toolrelay.pending.models import ClaimStatus, PendingCall
from toolrelay.pending.store import PendingCallStore

logger = get_logger(__name__)


def _required_string(raw: Mapping[str, Any], *names: str) -> tuple[str | None, str | None]:
    """First present value among names, and an error message if unusable."""
    label = names[0]
    value = next((raw[n] for n in names if raw.get(n) is not None), None)
    if value is None:
        return None, f"{label} is required"
    if not isinstance(value, str):
        return None, f"{label} must be a string"
    if not value.strip():
        return None, f"{label} must not be empty"
    return value, None


def validate_result(raw: Mapping[str, Any]) -> tuple[str, Any, str, str]:
    """Check the fields of an inbound tool result.

    Accepts `tool_call_id` or its alias `id`.

    Returns:
        (tool_call_id, output, thread_id, run_id)

    Raises:
        ValidationError: Listing every missing or malformed field
    """
    if not isinstance(raw, Mapping):
        raise ValidationError(["payload must be an object"])

    errors: list[str] = []
    tool_call_id, error = _required_string(raw, "tool_call_id", "id")
    if error:
        errors.append(error)
    if raw.get("output") is None:
        errors.append("output is required")
    thread_id, error = _required_string(raw, "thread_id")
    if error:
        errors.append(error)
    run_id, error = _required_string(raw, "run_id")
    if error:
        errors.append(error)

    if errors:
        raise ValidationError(
            errors,
            context={"tool_call_id": tool_call_id, "thread_id": thread_id, "run_id": run_id},
        )
    return tool_call_id, raw["output"], thread_id, run_id  # type: ignore[return-value]


class CorrelationProtocol:
    """Match an inbound tool result to its pending call.

    A matched call is claimed from the store: verified, marked processed
    and deleted in one atomic step. A result with no pending call is either
    accepted in degraded mode (tagged uncorrelated) or rejected, depending
    on accept_uncorrelated.
    """

    def __init__(self, store: PendingCallStore, config: CorrelationConfig) -> None:
        self._store = store
        self._config = config

    async def correlate(self, raw: Mapping[str, Any]) -> CorrelatedOutcome:
        """Validate, normalize and correlate one tool result.

        Raises:
            ValidationError: Missing or malformed fields
            ProcessingError: Output empty after normalization
            CorrelationError: thread/run mismatch, or no pending call while
                uncorrelated results are not accepted
            DuplicateResultError: The call was already correlated
        """
        tool_call_id, output, thread_id, run_id = validate_result(raw)
        context = {"tool_call_id": tool_call_id, "thread_id": thread_id, "run_id": run_id}

        try:
            text = normalize_output(output)
        except ProcessingError as e:
            e.add_context(**context)
            raise
        text, truncated = truncate_output(
            text, self._config.max_output_chars, self._config.truncation_marker
        )
        if truncated:
            logger.warning(
                "tool_output_truncated",
                max_chars=self._config.max_output_chars,
                **context,
            )

        def verify(call: PendingCall) -> None:
            if call.thread_id != thread_id or call.run_id != run_id:
                raise CorrelationError(
                    "Tool result does not match the thread/run of its pending call",
                    context={
                        **context,
                        "agent_id": call.agent_id,
                        "expected_thread_id": call.thread_id,
                        "expected_run_id": call.run_id,
                    },
                )

        try:
            claim = await self._store.claim(tool_call_id, verify)
        except CorrelationError as e:
            CORRELATIONS.labels(outcome="mismatch").inc()
            logger.error("correlation_mismatch", **e.context)
            raise

        if claim.status == ClaimStatus.ALREADY_PROCESSED:
            CORRELATIONS.labels(outcome="duplicate").inc()
            logger.warning("duplicate_tool_result", **context)
            raise DuplicateResultError(
                f"Result for tool call {tool_call_id} was already processed",
                context=context,
            )

        call = claim.call
        if call is None:
            if not self._config.accept_uncorrelated:
                CORRELATIONS.labels(outcome="rejected").inc()
                logger.warning("uncorrelated_result_rejected", **context)
                raise CorrelationError(
                    f"No pending call found for tool call {tool_call_id}",
                    context=context,
                )
            CORRELATIONS.labels(outcome="uncorrelated").inc()
            logger.warning("uncorrelated_result_accepted", **context)
            return CorrelatedOutcome(
                tool_call_id=tool_call_id,
                output=text,
                thread_id=thread_id,
                run_id=run_id,
                correlated=False,
                output_size=len(text),
                truncated=truncated,
            )

        CORRELATIONS.labels(outcome="matched").inc()
        logger.info(
            "tool_result_correlated",
            agent_id=call.agent_id,
            function_name=call.function_name,
            output_size=len(text),
            **context,
        )
        return CorrelatedOutcome(
            tool_call_id=tool_call_id,
            output=text,
            thread_id=thread_id,
            run_id=run_id,
            agent_id=call.agent_id,
            agent_name=call.agent_name,
            function_name=call.function_name,
            correlated=True,
            output_size=len(text),
            truncated=truncated,
        )

"""Tool-call dispatch with retries, backed by httpx."""

import asyncio
import hashlib
import hmac
import json
import time
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any
from urllib.parse import quote
from uuid import uuid4

import httpx

from toolrelay.agents.registry import AgentRegistry
from toolrelay.config.models import AgentConfig, DispatchConfig
from toolrelay.dispatch.backoff import compute_backoff
from toolrelay.dispatch.models import (
    AttemptOutcome,
    DeliveryAttempt,
    DeliveryPayload,
    DeliveryResult,
    ProbeResult,
)
from toolrelay.errors import DeliveryError, ValidationError
from toolrelay.observability.logging import get_logger
from toolrelay.observability.metrics import DELIVERY_ATTEMPTS, DELIVERY_LATENCY
from toolrelay.pending.models import PendingCall, PendingCallStatus
from toolrelay.pending.store import PendingCallStore
from toolrelay.providers.models import ToolCall

logger = get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]

_PREVIEW_CHARS = 500


def _header_value(value: str) -> str:
    """Percent-encode a header value; httpx encodes header values as ASCII."""
    return quote(value, safe=" !#$&'()*+,/:;=?@[]^`{|}")


def _response_echo(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text[:_PREVIEW_CHARS] if response.text else None


class DispatchEngine:
    """Deliver tool calls to the agent's external executor.

    Each call is recorded in the pending-call store before its first
    delivery attempt and retried with exponential backoff. Per-call
    failures are returned as results, never raised.
    """

    def __init__(
        self,
        store: PendingCallStore,
        registry: AgentRegistry,
        config: DispatchConfig,
        client: httpx.AsyncClient | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self._store = store
        self._registry = registry
        self._config = config
        self._client = client
        self._sleep = sleep
        self._redelivering: set[str] = set()

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure HTTP client is initialized."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout_seconds,
                follow_redirects=True,
                max_redirects=self._config.max_redirects,
            )
        return self._client

    def sign_payload(self, payload: str, secret: str, timestamp: int) -> str:
        """Generate HMAC-SHA256 signature for a delivery body.

        Returns:
            Signature string: "v1={hmac_hex}"
        """
        signed_payload = f"{timestamp}.{payload}"
        signature = hmac.new(
            secret.encode(), signed_payload.encode(), hashlib.sha256
        ).hexdigest()
        return f"v1={signature}"

    def _headers(self, payload: DeliveryPayload, body: str, attempt: int) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self._config.user_agent,
            "X-Request-ID": str(uuid4()),
            "X-Tool-Call-ID": _header_value(payload.tool_call_id),
            "X-Thread-ID": _header_value(payload.thread_id),
            "X-Run-ID": _header_value(payload.run_id),
            "X-Agent-ID": _header_value(payload.agent_id),
            "X-Agent-Name": _header_value(payload.agent_name or ""),
            "X-Attempt": str(attempt),
            "X-Max-Attempts": str(self._config.max_attempts),
        }
        if self._config.signing_secret is not None:
            timestamp = int(time.time())
            headers["X-Toolrelay-Timestamp"] = str(timestamp)
            headers["X-Toolrelay-Signature"] = self.sign_payload(
                body, self._config.signing_secret.get_secret_value(), timestamp
            )
        return headers

    async def dispatch(
        self,
        tool_calls: list[ToolCall],
        thread_id: str,
        run_id: str,
        agent_id: str,
    ) -> list[DeliveryResult]:
        """Dispatch every tool call of a paused run.

        Raises:
            ConfigurationError: If the agent or its endpoint cannot be
                resolved. Nothing is stored in that case.
        """
        endpoint = self._registry.endpoint_for(agent_id)
        agent = self._registry.get(agent_id)

        logger.info(
            "dispatch_started",
            thread_id=thread_id,
            run_id=run_id,
            agent_id=agent_id,
            tool_calls=len(tool_calls),
        )
        results = await asyncio.gather(*(
            self._dispatch_one(call, thread_id, run_id, agent_id, agent, endpoint)
            for call in tool_calls
        ))

        sent = sum(1 for r in results if r.sent)
        logger.info(
            "dispatch_finished",
            thread_id=thread_id,
            run_id=run_id,
            agent_id=agent_id,
            sent=sent,
            failed=len(results) - sent,
        )
        return list(results)

    async def _dispatch_one(
        self,
        call: ToolCall,
        thread_id: str,
        run_id: str,
        agent_id: str,
        agent: AgentConfig,
        endpoint: str,
    ) -> DeliveryResult:
        try:
            arguments = json.loads(call.arguments or "{}")
        except json.JSONDecodeError:
            arguments = None
        if not isinstance(arguments, dict):
            logger.warning(
                "tool_call_arguments_invalid",
                tool_call_id=call.id,
                function_name=call.function_name,
                thread_id=thread_id,
                run_id=run_id,
            )
            return DeliveryResult(
                tool_call_id=call.id,
                function_name=call.function_name,
                agent_id=agent_id,
                agent_name=agent.name,
                endpoint=endpoint,
                status="error",
                error=f"Tool call arguments are not a JSON object: {call.arguments[:200]}",
            )

        pending = PendingCall(
            id=call.id,
            thread_id=thread_id,
            run_id=run_id,
            agent_id=agent_id,
            agent_name=agent.name,
            function_name=call.function_name,
            arguments=arguments,
            endpoint=endpoint,
        )
        payload = DeliveryPayload(
            tool_call_id=call.id,
            function_name=call.function_name,
            arguments=arguments,
            thread_id=thread_id,
            run_id=run_id,
            agent_id=agent_id,
            agent_name=agent.name,
            agent_role=agent.role,
        )
        try:
            await self._store.put(pending)
        except Exception as e:
            return await self._delivery_crashed(payload, endpoint, e)
        return await self.send_with_retry(payload, endpoint)

    async def redeliver(self, call: PendingCall) -> DeliveryResult:
        """Start a new round of delivery attempts for a failed call.

        The call is put back to pending and delivered to the agent's current
        endpoint with the full retry budget.

        Raises:
            ValidationError: If the call is not failed or is already being
                redelivered
            ConfigurationError: If the agent no longer has a usable endpoint
            DeliveryError: If every attempt of the new round fails
        """
        context = {
            "tool_call_id": call.id,
            "thread_id": call.thread_id,
            "run_id": call.run_id,
            "agent_id": call.agent_id,
        }
        if call.status != PendingCallStatus.FAILED or call.id in self._redelivering:
            raise ValidationError(
                [f"pending call {call.id} is {call.status.value}; only failed calls "
                 "can be redelivered"],
                context=context,
            )

        endpoint = self._registry.endpoint_for(call.agent_id)
        agent = self._registry.get(call.agent_id)

        self._redelivering.add(call.id)
        try:
            updated = await self._store.update(
                call.id,
                status=PendingCallStatus.PENDING,
                failed_at=None,
            )
            if updated is None:
                raise DeliveryError("Pending call was removed before redelivery", context=context)

            logger.info("redelivery_started", endpoint=endpoint, **context)
            result = await self.send_with_retry(
                DeliveryPayload(
                    tool_call_id=call.id,
                    function_name=call.function_name,
                    arguments=call.arguments,
                    thread_id=call.thread_id,
                    run_id=call.run_id,
                    agent_id=call.agent_id,
                    agent_name=agent.name,
                    agent_role=agent.role,
                ),
                endpoint,
            )
        finally:
            self._redelivering.discard(call.id)

        if not result.sent:
            raise DeliveryError(result.error or "Redelivery failed", context=context)
        return result

    async def send_with_retry(self, payload: DeliveryPayload, endpoint: str) -> DeliveryResult:
        """Deliver a payload, retrying with backoff until success or exhaustion.

        Retry metadata is written to the payload's pending call. After the
        last failed attempt the call is marked failed and kept in the store.
        Never raises: an unexpected error also marks the call failed and is
        returned as an error result.
        """
        try:
            return await self._retry_loop(payload, endpoint)
        except Exception as e:
            return await self._delivery_crashed(payload, endpoint, e)

    async def _retry_loop(self, payload: DeliveryPayload, endpoint: str) -> DeliveryResult:
        body = payload.model_dump_json()
        max_attempts = self._config.max_attempts
        log = logger.bind(
            tool_call_id=payload.tool_call_id,
            thread_id=payload.thread_id,
            run_id=payload.run_id,
            agent_id=payload.agent_id,
        )

        attempt = 1
        while True:
            attempt_record = await self._attempt(payload, body, endpoint, attempt)

            if attempt_record.outcome == AttemptOutcome.SUCCESS:
                log.info(
                    "delivery_succeeded",
                    attempt=attempt,
                    status_code=attempt_record.status_code,
                    response_time_ms=attempt_record.response_time_ms,
                )
                await self._store.update(
                    payload.tool_call_id,
                    retry_count=attempt - 1,
                    last_attempt_at=datetime.now(UTC),
                )
                return self._result(payload, endpoint, attempt_record, status="sent")

            if attempt_record.outcome == AttemptOutcome.TERMINAL_FAILURE or attempt >= max_attempts:
                break

            delay_ms = compute_backoff(
                attempt, self._config.base_delay_ms, self._config.max_delay_ms
            )
            attempt_record = replace(attempt_record, delay_ms=delay_ms)
            updated = await self._store.update(
                payload.tool_call_id,
                retry_count=attempt,
                last_error=attempt_record.error,
                last_attempt_at=datetime.now(UTC),
            )
            if updated is None:
                # Correlated or swept while we were retrying
                log.warning("delivery_abandoned", attempt=attempt)
                return self._result(
                    payload,
                    endpoint,
                    attempt_record,
                    status="error",
                    error="Pending call removed during delivery",
                )

            log.warning(
                "delivery_retry_scheduled",
                attempt=attempt,
                max_attempts=max_attempts,
                delay_ms=delay_ms,
                error=attempt_record.error,
            )
            await self._sleep(delay_ms / 1000)
            attempt += 1

        await self._store.update(
            payload.tool_call_id,
            status=PendingCallStatus.FAILED,
            retry_count=attempt_record.attempt - 1,
            last_error=attempt_record.error,
            last_attempt_at=datetime.now(UTC),
            failed_at=datetime.now(UTC),
        )
        log.error(
            "delivery_exhausted",
            attempts=attempt_record.attempt,
            error=attempt_record.error,
            terminal=attempt_record.outcome == AttemptOutcome.TERMINAL_FAILURE,
        )
        return self._result(
            payload,
            endpoint,
            attempt_record,
            status="error",
            error=(
                f"Delivery failed after {attempt_record.attempt} attempt(s): "
                f"{attempt_record.error}"
            ),
        )

    async def _delivery_crashed(
        self,
        payload: DeliveryPayload,
        endpoint: str,
        error: Exception,
    ) -> DeliveryResult:
        detail = f"{type(error).__name__}: {error}"
        logger.exception(
            "delivery_crashed",
            tool_call_id=payload.tool_call_id,
            thread_id=payload.thread_id,
            run_id=payload.run_id,
            agent_id=payload.agent_id,
            error=detail,
        )
        now = datetime.now(UTC)
        await self._store.update(
            payload.tool_call_id,
            status=PendingCallStatus.FAILED,
            last_error=detail,
            last_attempt_at=now,
            failed_at=now,
        )
        return DeliveryResult(
            tool_call_id=payload.tool_call_id,
            function_name=payload.function_name,
            agent_id=payload.agent_id,
            agent_name=payload.agent_name,
            endpoint=endpoint,
            status="error",
            error=f"Unexpected delivery failure: {detail}",
        )

    async def _attempt(
        self,
        payload: DeliveryPayload,
        body: str,
        endpoint: str,
        attempt: int,
    ) -> DeliveryAttempt:
        """Send once. Classifies the outcome, never raises for transport errors."""
        client = await self._ensure_client()
        headers = self._headers(payload, body, attempt)
        start_time = time.monotonic()

        def elapsed_ms() -> int:
            return int((time.monotonic() - start_time) * 1000)

        try:
            response = await client.post(
                endpoint,
                content=body,
                headers=headers,
                timeout=self._config.timeout_seconds,
            )
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            outcome, error, status_code, echo = (
                AttemptOutcome.TERMINAL_FAILURE, f"Invalid endpoint: {e}", None, None
            )
        except httpx.TimeoutException:
            outcome, error, status_code, echo = (
                AttemptOutcome.RETRYABLE_FAILURE,
                f"Timeout after {self._config.timeout_seconds}s",
                None,
                None,
            )
        except httpx.HTTPError as e:
            outcome, error, status_code, echo = (
                AttemptOutcome.RETRYABLE_FAILURE, f"{type(e).__name__}: {e}", None, None
            )
        else:
            status_code = response.status_code
            echo = _response_echo(response)
            if status_code >= 400:
                outcome = AttemptOutcome.RETRYABLE_FAILURE
                error = f"HTTP {status_code}: {response.reason_phrase}"
            else:
                outcome, error = AttemptOutcome.SUCCESS, None

        response_time_ms = elapsed_ms()
        DELIVERY_ATTEMPTS.labels(agent_id=payload.agent_id, outcome=outcome.value).inc()
        DELIVERY_LATENCY.labels(agent_id=payload.agent_id).observe(response_time_ms / 1000)

        return DeliveryAttempt(
            attempt=attempt,
            endpoint=endpoint,
            outcome=outcome,
            status_code=status_code,
            response=echo,
            error=error,
            response_time_ms=response_time_ms,
        )

    def _result(
        self,
        payload: DeliveryPayload,
        endpoint: str,
        attempt: DeliveryAttempt,
        *,
        status: str,
        error: str | None = None,
    ) -> DeliveryResult:
        return DeliveryResult(
            tool_call_id=payload.tool_call_id,
            function_name=payload.function_name,
            agent_id=payload.agent_id,
            agent_name=payload.agent_name,
            endpoint=endpoint,
            status=status,
            attempts=attempt.attempt,
            status_code=attempt.status_code,
            response=attempt.response,
            error=error,
            retryable=attempt.outcome == AttemptOutcome.RETRYABLE_FAILURE,
            response_time_ms=attempt.response_time_ms,
        )

    async def probe(self, agent_id: str) -> ProbeResult:
        """Send a synthetic health-check payload to an agent's endpoint."""
        agent = self._registry.get(agent_id)
        if not self._registry.has_endpoint(agent_id):
            return ProbeResult(
                agent_id=agent_id,
                agent_name=agent.name,
                status="not_configured",
                error="Webhook URL not configured",
            )

        body = json.dumps({
            "type": "health_check",
            "agent_id": agent_id,
            "agent_name": agent.name,
            "timestamp": datetime.now(UTC).isoformat(),
            "test_data": {"message": "Health check from toolrelay"},
        })
        client = await self._ensure_client()
        start_time = time.monotonic()
        try:
            response = await client.post(
                self._registry.endpoint_for(agent_id),
                content=body,
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": self._config.user_agent,
                    "X-Health-Check": "true",
                },
                timeout=self._config.health_timeout_seconds,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("health_probe_failed", agent_id=agent_id, error=str(e))
            return ProbeResult(
                agent_id=agent_id,
                agent_name=agent.name,
                status="unhealthy",
                reachable=False,
                response_time_ms=int((time.monotonic() - start_time) * 1000),
                error=str(e) or type(e).__name__,
            )

        healthy = response.status_code < 500
        return ProbeResult(
            agent_id=agent_id,
            agent_name=agent.name,
            status="healthy" if healthy else "unhealthy",
            reachable=True,
            status_code=response.status_code,
            response_time_ms=int((time.monotonic() - start_time) * 1000),
            error=None if healthy else f"HTTP {response.status_code}",
        )

    async def probe_all(self) -> dict[str, ProbeResult]:
        agent_ids = self._registry.ids()
        results = await asyncio.gather(*(self.probe(agent_id) for agent_id in agent_ids))
        return dict(zip(agent_ids, results, strict=True))

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

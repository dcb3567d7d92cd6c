"""Run lifecycle orchestration: turns, tool dispatch and resumption."""

import asyncio
from collections.abc import Mapping
from typing import Any

from toolrelay.agents.registry import AgentRegistry
from toolrelay.config.models import OrchestrationConfig, PollConfig, ProviderConfig
from toolrelay.correlation.models import CorrelatedOutcome
from toolrelay.correlation.outbox import ResultOutbox
from toolrelay.correlation.protocol import CorrelationProtocol
from toolrelay.dispatch.engine import DispatchEngine
from toolrelay.errors import (
    ConfigurationError,
    DuplicateResultError,
    ProviderError,
    RelayError,
    RunActiveError,
)
from toolrelay.observability.logging import get_logger
from toolrelay.observability.metrics import TURNS
from toolrelay.orchestration.models import TurnOutcome, TurnStatus
from toolrelay.orchestration.retry import SleepFunc, retry_step
from toolrelay.pending.store import PendingCallStore
from toolrelay.providers.base import ConversationProvider
from toolrelay.providers.models import Run, RunStatus

logger = get_logger(__name__)


class RunOrchestrator:
    """Drives a turn through the provider's run lifecycle.

    start_turn: ensure thread -> append message -> start run -> poll ->
    branch. A run paused for tool execution is handed to the dispatch
    engine and the turn ends there. resume_with_result correlates an
    asynchronous tool result, submits the run's outputs once all have
    arrived, re-polls and applies the same branch logic.
    """

    def __init__(
        self,
        provider: ConversationProvider,
        registry: AgentRegistry,
        dispatcher: DispatchEngine,
        correlator: CorrelationProtocol,
        outbox: ResultOutbox,
        store: PendingCallStore,
        provider_config: ProviderConfig,
        config: OrchestrationConfig,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self._registry = registry
        self._dispatcher = dispatcher
        self._correlator = correlator
        self._outbox = outbox
        self._store = store
        self._provider_config = provider_config
        self._config = config
        self._sleep = sleep

        # Threads with a turn in flight in this process
        self._active_threads: set[str] = set()
        # Serializes correlate -> park -> count -> drain
        self._resume_lock = asyncio.Lock()

    @property
    def active_threads(self) -> frozenset[str]:
        return frozenset(self._active_threads)

    async def _step(self, step: str, operation: Any, **context: Any) -> Any:
        return await retry_step(
            step,
            operation,
            getattr(self._config, step),
            sleep=self._sleep,
            **context,
        )

    async def _poll(self, step: str, thread_id: str, run_id: str, poll: PollConfig) -> Run:
        async def poll_once() -> Run:
            run = await self._provider.poll_run(
                thread_id,
                run_id,
                max_attempts=poll.max_attempts,
                interval_seconds=poll.interval_seconds,
            )
            if run.status == RunStatus.UNKNOWN:
                raise ProviderError(
                    "Run did not settle within the polling window",
                    context={"thread_id": thread_id, "run_id": run_id},
                )
            return run

        return await self._step(step, poll_once, thread_id=thread_id, run_id=run_id)

    async def start_turn(
        self,
        message: str,
        agent_id: str,
        thread_id: str | None = None,
    ) -> TurnOutcome:
        """Process one user message for an agent.

        Raises:
            ConfigurationError: Unknown agent or assistant not connected
            RunActiveError: The provider reports an active run on the thread
            ProviderError: A provider step exhausted its retry budget
        """
        agent = self._registry.get(agent_id)
        assistant_id = self._registry.assistant_id_for(agent_id)

        if thread_id is not None and thread_id in self._active_threads:
            logger.info("turn_rejected_thread_busy", thread_id=thread_id, agent_id=agent_id)
            TURNS.labels(phase="turn", status=TurnStatus.BUSY.value).inc()
            return TurnOutcome(
                status=TurnStatus.BUSY,
                message=f"{agent.name} is still working on a previous message in this thread",
                thread_id=thread_id,
                agent_id=agent_id,
                agent_name=agent.name,
            )

        guarded: str | None = None
        if thread_id is not None:
            self._active_threads.add(thread_id)
            guarded = thread_id

        try:
            if thread_id is not None:
                busy = await self._check_active_run(thread_id, agent_id, agent.name)
                if busy is not None:
                    return busy
            else:
                thread_id = await self._step("create_thread", self._provider.create_thread)
                self._active_threads.add(thread_id)
                guarded = thread_id
                logger.info("thread_created", thread_id=thread_id, agent_id=agent_id)

            ids = {"thread_id": thread_id, "agent_id": agent_id}
            await self._step(
                "add_message",
                lambda: self._provider.add_message(thread_id, message),
                **ids,
            )
            run = await self._step(
                "start_run",
                lambda: self._provider.start_run(thread_id, assistant_id),
                **ids,
            )
            logger.info("run_started", run_id=run.id, **ids)

            run = await self._poll("poll", thread_id, run.id, self._provider_config.poll)
            return await self._branch(run, agent_id, phase="turn")
        except RelayError as e:
            e.add_context(thread_id=thread_id, agent_id=agent_id)
            raise
        finally:
            if guarded is not None:
                self._active_threads.discard(guarded)

    async def _check_active_run(
        self,
        thread_id: str,
        agent_id: str,
        agent_name: str,
    ) -> TurnOutcome | None:
        """Busy outcome when the thread already has a non-terminal run."""
        try:
            latest = await self._step(
                "check_run",
                lambda: self._provider.get_latest_run(thread_id),
                thread_id=thread_id,
            )
        except RunActiveError:
            raise
        except ProviderError as e:
            logger.warning("active_run_check_failed", thread_id=thread_id, error=e.detail)
            return None

        if latest is None or not latest.status.is_active:
            return None

        pending_count = None
        message = f"{agent_name} is still processing a previous request"
        if latest.status == RunStatus.REQUIRES_ACTION:
            pending_count = await self._store.count_for_run(thread_id, latest.id)
            message = f"{agent_name} is waiting on {pending_count} tool result(s)"

        logger.info(
            "turn_rejected_run_active",
            thread_id=thread_id,
            run_id=latest.id,
            run_status=latest.status.value,
            pending_count=pending_count,
        )
        TURNS.labels(phase="turn", status=TurnStatus.BUSY.value).inc()
        return TurnOutcome(
            status=TurnStatus.BUSY,
            message=message,
            thread_id=thread_id,
            run_id=latest.id,
            run_status=latest.status.value,
            agent_id=agent_id,
            agent_name=agent_name,
            pending_count=pending_count,
        )

    async def resume_with_result(self, raw: Mapping[str, Any]) -> TurnOutcome:
        """Accept an asynchronous tool result and resume its run.

        Outputs are held until every pending call of the run has reported;
        earlier results return AWAITING_RESULTS.

        A result whose output is still parked because submitting the batch
        failed is treated as a redelivery: the parked batch is submitted
        again instead of rejecting the result as a duplicate.

        Raises:
            ValidationError, ProcessingError, CorrelationError,
            DuplicateResultError: From correlation; nothing is submitted
            ProviderError: Submitting the outputs failed; the batch stays
                parked for the next delivery of one of its results
        """
        async with self._resume_lock:
            try:
                outcome = await self._correlator.correlate(raw)
            except DuplicateResultError as e:
                outcome = self._parked_redelivery(e)
            else:
                self._outbox.park(outcome)
            remaining = await self._store.count_for_run(outcome.thread_id, outcome.run_id)
            outputs = [] if remaining else self._outbox.take(outcome.thread_id, outcome.run_id)

        base = {
            "thread_id": outcome.thread_id,
            "run_id": outcome.run_id,
            "agent_id": outcome.agent_id,
            "agent_name": outcome.agent_name,
            "tool_call_id": outcome.tool_call_id,
            "correlated": outcome.correlated,
        }
        name = outcome.agent_name or "The assistant"

        if remaining:
            logger.info("tool_result_parked", pending_count=remaining, **base)
            TURNS.labels(phase="resume", status=TurnStatus.AWAITING_RESULTS.value).inc()
            return TurnOutcome(
                status=TurnStatus.AWAITING_RESULTS,
                message=f"Result accepted; waiting on {remaining} more tool result(s)",
                pending_count=remaining,
                **base,
            )
        if not outputs:
            # Another result for the same run is submitting the batch
            TURNS.labels(phase="resume", status=TurnStatus.PROCESSING.value).inc()
            return TurnOutcome(
                status=TurnStatus.PROCESSING,
                message="Run is already being resumed",
                **base,
            )

        try:
            await self._step(
                "submit_outputs",
                lambda: self._provider.submit_tool_outputs(
                    outcome.thread_id, outcome.run_id, outputs
                ),
                thread_id=outcome.thread_id,
                run_id=outcome.run_id,
            )
        except RelayError as e:
            logger.error("submit_outputs_failed", outputs=len(outputs), error=e.detail, **base)
            e.add_context(
                tool_call_id=outcome.tool_call_id,
                thread_id=outcome.thread_id,
                run_id=outcome.run_id,
                agent_id=outcome.agent_id,
            )
            raise
        finally:
            self._outbox.release(outcome.thread_id, outcome.run_id)
        self._outbox.drain(outcome.thread_id, outcome.run_id)
        logger.info("run_resumed", outputs=len(outputs), **base)

        try:
            try:
                run = await self._poll(
                    "resume_poll",
                    outcome.thread_id,
                    outcome.run_id,
                    self._provider_config.resume_poll,
                )
            except RunActiveError:
                raise
            except ProviderError as e:
                logger.warning("resume_poll_gave_up", error=e.detail, **base)
                TURNS.labels(phase="resume", status=TurnStatus.PROCESSING.value).inc()
                return TurnOutcome(
                    status=TurnStatus.PROCESSING,
                    message=f"Tool output submitted for {name}, assistant status: unknown",
                    run_status=RunStatus.UNKNOWN.value,
                    **base,
                )

            result = await self._branch(run, outcome.agent_id, phase="resume")
        except RelayError as e:
            e.add_context(
                tool_call_id=outcome.tool_call_id,
                thread_id=outcome.thread_id,
                run_id=outcome.run_id,
                agent_id=outcome.agent_id,
            )
            raise

        return result.model_copy(
            update={"tool_call_id": outcome.tool_call_id, "correlated": outcome.correlated}
        )

    def _parked_redelivery(self, error: DuplicateResultError) -> CorrelatedOutcome:
        """Outcome still parked for a result rejected as a duplicate, or re-raise.

        Only a result for the same thread and run as the parked outcome
        counts as a redelivery.
        """
        parked = self._outbox.holding(error.context.get("tool_call_id", ""))
        if parked is None or (parked.thread_id, parked.run_id) != (
            error.context.get("thread_id"),
            error.context.get("run_id"),
        ):
            raise error
        logger.info(
            "tool_result_redelivered",
            tool_call_id=parked.tool_call_id,
            thread_id=parked.thread_id,
            run_id=parked.run_id,
        )
        return parked

    async def _branch(self, run: Run, agent_id: str, *, phase: str) -> TurnOutcome:
        """Turn a settled run into an outcome, dispatching tool calls if needed."""
        agent = self._registry.get(agent_id) if agent_id in self._registry else None
        agent_name = agent.name if agent else None
        base = {
            "thread_id": run.thread_id,
            "run_id": run.id,
            "run_status": run.status.value,
            "agent_id": agent_id,
            "agent_name": agent_name,
        }

        if run.status == RunStatus.COMPLETED:
            content = await self._final_message(run, agent_name, phase=phase)
            outcome = TurnOutcome(status=TurnStatus.COMPLETED, message=content, **base)

        elif run.status == RunStatus.REQUIRES_ACTION:
            outcome = await self._dispatch(run, agent_id, agent_name, base)

        elif run.status.is_failure:
            logger.error("run_failed", error=run.last_error, **base)
            outcome = TurnOutcome(
                status=TurnStatus.FAILED,
                message=f"Run ended with status {run.status.value}",
                error={"kind": "run_failed", "detail": run.last_error},
                **base,
            )

        else:
            outcome = TurnOutcome(
                status=TurnStatus.PROCESSING,
                message=f"Assistant status: {run.status.value}",
                **base,
            )

        TURNS.labels(phase=phase, status=outcome.status.value).inc()
        logger.info("turn_finished", phase=phase, status=outcome.status.value, **base)
        return outcome

    async def _final_message(self, run: Run, agent_name: str | None, *, phase: str) -> str:
        """Reply written by this run; never an earlier turn's message."""
        fallback = (
            f"Task completed successfully by {agent_name or 'the assistant'}. "
            "The tool call has been processed and the assistant has finished "
            "the requested operation."
        )
        if phase == "turn":
            message = await self._step(
                "fetch_message",
                lambda: self._provider.get_latest_assistant_message(run.thread_id, run.id),
                thread_id=run.thread_id,
                run_id=run.id,
            )
            return message.content if message else ""

        try:
            message = await self._step(
                "resume_fetch_message",
                lambda: self._provider.get_latest_assistant_message(run.thread_id, run.id),
                thread_id=run.thread_id,
                run_id=run.id,
            )
        except ProviderError as e:
            logger.warning(
                "final_message_fallback",
                thread_id=run.thread_id,
                run_id=run.id,
                error=e.detail,
            )
            return fallback
        return message.content if message else fallback

    async def _dispatch(
        self,
        run: Run,
        agent_id: str,
        agent_name: str | None,
        base: dict[str, Any],
    ) -> TurnOutcome:
        if not self._registry.has_endpoint(agent_id):
            error = ConfigurationError(
                f"No webhook configured for {agent_name or agent_id}",
                context={"thread_id": run.thread_id, "run_id": run.id, "agent_id": agent_id},
            )
            logger.error("dispatch_unavailable", tool_calls=len(run.tool_calls), **error.context)
            return TurnOutcome(
                status=TurnStatus.DISPATCH_UNAVAILABLE,
                message=f"{agent_name or 'The assistant'} requested tools but cannot execute them",
                tool_calls=run.tool_calls,
                error=error.to_dict(),
                **base,
            )

        results = await self._dispatcher.dispatch(run.tool_calls, run.thread_id, run.id, agent_id)
        pending_count = await self._store.count_for_run(run.thread_id, run.id)
        return TurnOutcome(
            status=TurnStatus.REQUIRES_ACTION,
            message=f"{agent_name} requested {len(run.tool_calls)} tool call(s)",
            tool_calls=run.tool_calls,
            dispatch_results=results,
            pending_count=pending_count,
            **base,
        )

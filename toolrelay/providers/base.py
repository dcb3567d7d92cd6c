"""ConversationProvider abstract interface."""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from toolrelay.observability.logging import get_logger
from toolrelay.providers.models import (
    SETTLED_STATUSES,
    AssistantMessage,
    Run,
    RunStatus,
    ToolOutput,
)

logger = get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class ConversationProvider(ABC):
    """Conversational AI backend that owns threads and runs.

    Implementations raise toolrelay.errors.ProviderError for failures,
    flagging transient ones as retryable, and RunActiveError when the
    thread already has an active run.
    """

    def __init__(self, sleep: SleepFunc = asyncio.sleep) -> None:
        self._sleep = sleep

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def create_thread(self) -> str:
        """Create a conversation thread and return its id."""
        pass

    @abstractmethod
    async def add_message(self, thread_id: str, content: str) -> str:
        """Append a user message to a thread. Returns the message id."""
        pass

    @abstractmethod
    async def start_run(self, thread_id: str, assistant_id: str) -> Run:
        """Start a run of an assistant against a thread."""
        pass

    @abstractmethod
    async def get_run(self, thread_id: str, run_id: str) -> Run:
        """Fetch the current state of a run."""
        pass

    @abstractmethod
    async def get_latest_run(self, thread_id: str) -> Run | None:
        """Most recent run on a thread, if any."""
        pass

    @abstractmethod
    async def get_latest_assistant_message(
        self,
        thread_id: str,
        run_id: str | None = None,
    ) -> AssistantMessage | None:
        """Most recent assistant message on a thread, if any.

        With run_id, only messages written by that run are considered.
        """
        pass

    @abstractmethod
    async def submit_tool_outputs(
        self,
        thread_id: str,
        run_id: str,
        outputs: list[ToolOutput],
    ) -> Run:
        """Submit tool outputs to a run paused in requires_action."""
        pass

    async def close(self) -> None:
        """Release underlying connections."""
        return None

    async def poll_run(
        self,
        thread_id: str,
        run_id: str,
        *,
        max_attempts: int,
        interval_seconds: float,
    ) -> Run:
        """Poll a run until it settles.

        Returns as soon as the run is terminal or requires action. If it has
        not settled after max_attempts checks, returns the last snapshot with
        status UNKNOWN.
        """
        run: Run | None = None
        for attempt in range(1, max_attempts + 1):
            run = await self.get_run(thread_id, run_id)
            if run.status in SETTLED_STATUSES:
                return run
            logger.debug(
                "run_poll_pending",
                thread_id=thread_id,
                run_id=run_id,
                status=run.status.value,
                attempt=attempt,
            )
            if attempt < max_attempts:
                await self._sleep(interval_seconds)

        logger.warning(
            "run_poll_exhausted",
            thread_id=thread_id,
            run_id=run_id,
            attempts=max_attempts,
        )
        last = run or Run(id=run_id, thread_id=thread_id, status=RunStatus.UNKNOWN)
        return last.model_copy(update={"status": RunStatus.UNKNOWN})

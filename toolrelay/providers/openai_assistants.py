"""Conversation provider backed by the OpenAI Assistants API."""

import asyncio
from typing import Any

import openai
from openai import AsyncOpenAI

from toolrelay.errors import ProviderError, RunActiveError
from toolrelay.observability.logging import get_logger
from toolrelay.providers.base import ConversationProvider, SleepFunc
from toolrelay.providers.models import (
    AssistantMessage,
    Run,
    RunStatus,
    ToolCall,
    ToolOutput,
)

logger = get_logger(__name__)

_RUN_ACTIVE_MARKERS = ("while a run", "is active")


def _is_run_active(message: str) -> bool:
    lowered = message.lower()
    return all(marker in lowered for marker in _RUN_ACTIVE_MARKERS)


def map_openai_error(error: Exception, operation: str, **context: Any) -> ProviderError:
    """Translate an OpenAI SDK exception into a ProviderError."""
    context = {"operation": operation, **{k: v for k, v in context.items() if v}}
    message = str(error)

    if isinstance(error, openai.APITimeoutError):
        return ProviderError(f"{operation} timed out", context=context)
    if isinstance(error, openai.APIConnectionError):
        return ProviderError(f"{operation} connection failed: {message}", context=context)
    if isinstance(error, openai.RateLimitError):
        return ProviderError(f"{operation} rate limited: {message}", context=context)
    if isinstance(error, openai.BadRequestError) and _is_run_active(message):
        return RunActiveError(
            "Thread already has an active run; wait for it to finish before sending another message",
            context={**context, "provider_message": message},
        )
    if isinstance(error, openai.APIStatusError):
        return ProviderError(
            f"{operation} failed with status {error.status_code}: {message}",
            retryable=error.status_code >= 500,
            context={**context, "status_code": error.status_code},
        )
    return ProviderError(f"{operation} failed: {message}", retryable=False, context=context)


def _to_run(raw: Any) -> Run:
    tool_calls: list[ToolCall] = []
    required = getattr(raw, "required_action", None)
    if required is not None and required.submit_tool_outputs is not None:
        for call in required.submit_tool_outputs.tool_calls:
            tool_calls.append(
                ToolCall(
                    id=call.id,
                    function_name=call.function.name,
                    arguments=call.function.arguments or "{}",
                )
            )

    last_error = getattr(raw, "last_error", None)
    return Run(
        id=raw.id,
        thread_id=raw.thread_id,
        status=RunStatus.parse(raw.status),
        tool_calls=tool_calls,
        last_error=last_error.message if last_error is not None else None,
    )


class OpenAIAssistantsProvider(ConversationProvider):
    """Threads, runs and messages through AsyncOpenAI's beta Assistants API."""

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout: float = 30.0,
        client: AsyncOpenAI | None = None,
        sleep: SleepFunc | None = None,
    ):
        """Initialize the provider.

        Args:
            api_key: OpenAI API key
            base_url: Optional custom API base URL
            timeout: Per-request timeout in seconds
            client: Preconfigured client (tests)
            sleep: Wait function used between polls
        """
        super().__init__(sleep or asyncio.sleep)
        # Retries are owned by the orchestrator's step budgets
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    @property
    def provider_name(self) -> str:
        return "openai"

    async def create_thread(self) -> str:
        try:
            thread = await self._client.beta.threads.create()
        except openai.OpenAIError as e:
            raise map_openai_error(e, "create_thread") from e
        return thread.id

    async def add_message(self, thread_id: str, content: str) -> str:
        try:
            message = await self._client.beta.threads.messages.create(
                thread_id=thread_id,
                role="user",
                content=content,
            )
        except openai.OpenAIError as e:
            raise map_openai_error(e, "add_message", thread_id=thread_id) from e
        return message.id

    async def start_run(self, thread_id: str, assistant_id: str) -> Run:
        try:
            run = await self._client.beta.threads.runs.create(
                thread_id=thread_id,
                assistant_id=assistant_id,
            )
        except openai.OpenAIError as e:
            raise map_openai_error(e, "start_run", thread_id=thread_id) from e
        return _to_run(run)

    async def get_run(self, thread_id: str, run_id: str) -> Run:
        try:
            run = await self._client.beta.threads.runs.retrieve(
                run_id=run_id,
                thread_id=thread_id,
            )
        except openai.OpenAIError as e:
            raise map_openai_error(e, "get_run", thread_id=thread_id, run_id=run_id) from e
        return _to_run(run)

    async def get_latest_run(self, thread_id: str) -> Run | None:
        try:
            page = await self._client.beta.threads.runs.list(thread_id=thread_id, limit=1)
        except openai.OpenAIError as e:
            raise map_openai_error(e, "get_latest_run", thread_id=thread_id) from e
        return _to_run(page.data[0]) if page.data else None

    async def get_latest_assistant_message(
        self,
        thread_id: str,
        run_id: str | None = None,
    ) -> AssistantMessage | None:
        params: dict[str, Any] = {"thread_id": thread_id, "order": "desc", "limit": 20}
        if run_id is not None:
            params["run_id"] = run_id
        try:
            page = await self._client.beta.threads.messages.list(**params)
        except openai.OpenAIError as e:
            raise map_openai_error(
                e, "fetch_message", thread_id=thread_id, run_id=run_id
            ) from e

        for message in page.data:
            if message.role != "assistant":
                continue
            if run_id is not None and message.run_id != run_id:
                continue
            texts = [part.text.value for part in message.content if part.type == "text"]
            if texts:
                return AssistantMessage(id=message.id, content="\n".join(texts))
        return None

    async def submit_tool_outputs(
        self,
        thread_id: str,
        run_id: str,
        outputs: list[ToolOutput],
    ) -> Run:
        try:
            run = await self._client.beta.threads.runs.submit_tool_outputs(
                run_id=run_id,
                thread_id=thread_id,
                tool_outputs=[o.model_dump() for o in outputs],
            )
        except openai.OpenAIError as e:
            raise map_openai_error(
                e, "submit_tool_outputs", thread_id=thread_id, run_id=run_id
            ) from e
        logger.info(
            "tool_outputs_submitted",
            thread_id=thread_id,
            run_id=run_id,
            count=len(outputs),
        )
        return _to_run(run)

    async def close(self) -> None:
        await self._client.close()

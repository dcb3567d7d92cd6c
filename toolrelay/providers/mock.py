"""Mock conversation provider for development and testing."""

import itertools
import json
from collections import defaultdict
from typing import Any

from toolrelay.errors import ProviderError, RunActiveError
from toolrelay.providers.base import ConversationProvider, SleepFunc
from toolrelay.providers.models import (
    AssistantMessage,
    Run,
    RunStatus,
    ToolCall,
    ToolOutput,
)


class MockConversationProvider(ConversationProvider):
    """In-memory provider with scripted behaviour.

    A new run completes immediately with a canned reply, unless the latest
    user message matches a scripted trigger, in which case the run pauses
    in requires_action with the scripted tool calls. Submitting outputs
    completes the run. Failures can be injected per operation.
    """

    def __init__(
        self,
        default_response: str = "Mock response",
        responses: dict[str, str | None] | None = None,
        tool_reply: str = "Tool results received.",
        pending_polls: int = 0,
        sleep: SleepFunc | None = None,
    ):
        """Initialize mock provider.

        Args:
            default_response: Reply when no canned response matches
            responses: Map of user message content to reply; None means the
                run completes without writing a message
            tool_reply: Reply after tool outputs are submitted
            pending_polls: get_run calls that report in_progress before a
                run settles
            sleep: Wait function used between polls
        """
        if sleep is not None:
            super().__init__(sleep)
        else:
            super().__init__(self._no_sleep)
        self._default_response = default_response
        self._responses = responses or {}
        self._tool_reply = tool_reply
        self._pending_polls = pending_polls

        self._ids = itertools.count(1)
        self._tool_scripts: dict[str, list[tuple[str, Any]]] = {}
        self._failures: dict[str, list[Exception]] = defaultdict(list)

        self._messages: dict[str, list[dict[str, str]]] = {}
        self._runs: dict[str, Run] = {}
        self._thread_runs: dict[str, list[str]] = defaultdict(list)
        self._settled: dict[str, Run] = {}
        self._polls_left: dict[str, int] = {}
        self._pinned: set[str] = set()
        self._submitted: dict[str, list[ToolOutput]] = {}
        self._call_history: list[dict[str, Any]] = []

    @staticmethod
    async def _no_sleep(_seconds: float) -> None:
        return None

    @property
    def provider_name(self) -> str:
        return "mock"

    @property
    def call_history(self) -> list[dict[str, Any]]:
        """Return history of calls for testing assertions."""
        return self._call_history

    def calls_to(self, operation: str) -> list[dict[str, Any]]:
        return [c for c in self._call_history if c["operation"] == operation]

    def clear_history(self) -> None:
        self._call_history.clear()

    def set_response(self, trigger: str, response: str | None) -> None:
        """Set the reply for a specific user message (None for no reply)."""
        self._responses[trigger] = response

    def script_tool_calls(self, trigger: str, calls: list[tuple[str, Any]]) -> None:
        """Make runs started after `trigger` request these tool calls.

        Each call is (function_name, arguments); dict arguments are JSON
        encoded, strings are passed through unchanged.
        """
        self._tool_scripts[trigger] = list(calls)

    def fail_next(self, operation: str, error: Exception | None = None, times: int = 1) -> None:
        """Make the next `times` calls to `operation` raise `error`."""
        error = error or ProviderError(f"Injected {operation} failure")
        self._failures[operation].extend([error] * times)

    def set_run_status(self, run_id: str, status: RunStatus) -> None:
        """Pin a run to a status until release_run is called."""
        run = self._runs[run_id]
        self._runs[run_id] = run.model_copy(update={"status": status})
        self._pinned.add(run_id)

    def release_run(self, run_id: str) -> None:
        """Let a pinned run continue with its scripted behaviour."""
        self._pinned.discard(run_id)

    def submitted_outputs(self, run_id: str) -> list[ToolOutput]:
        return list(self._submitted.get(run_id, []))

    def messages(self, thread_id: str) -> list[dict[str, str]]:
        return list(self._messages.get(thread_id, []))

    def _record(self, operation: str, **kwargs: Any) -> None:
        self._call_history.append({"operation": operation, **kwargs})
        failures = self._failures.get(operation)
        if failures:
            raise failures.pop(0)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}_mock_{next(self._ids)}"

    def _active_run(self, thread_id: str) -> Run | None:
        for run_id in reversed(self._thread_runs.get(thread_id, [])):
            run = self._runs[run_id]
            if run.status.is_active:
                return run
        return None

    def _require_thread(self, thread_id: str) -> None:
        if thread_id not in self._messages:
            raise ProviderError(
                f"No thread found with id '{thread_id}'",
                retryable=False,
                context={"thread_id": thread_id},
            )

    def _require_run(self, thread_id: str, run_id: str) -> Run:
        run = self._runs.get(run_id)
        if run is None or run.thread_id != thread_id:
            raise ProviderError(
                f"No run found with id '{run_id}'",
                retryable=False,
                context={"thread_id": thread_id, "run_id": run_id},
            )
        return run

    def _reply(self, thread_id: str, run_id: str, content: str | None) -> None:
        if content is None:
            return
        self._messages[thread_id].append({
            "id": self._next_id("msg"),
            "role": "assistant",
            "content": content,
            "run_id": run_id,
        })

    def _settle(self, run: Run) -> Run:
        """Status the run reaches once its pending polls are used up."""
        if run.status != RunStatus.QUEUED:
            return run
        user_messages = [m for m in self._messages[run.thread_id] if m["role"] == "user"]
        last = user_messages[-1]["content"] if user_messages else ""

        script = self._tool_scripts.get(last)
        if script:
            tool_calls = [
                ToolCall(
                    id=self._next_id("call"),
                    function_name=name,
                    arguments=args if isinstance(args, str) else json.dumps(args),
                )
                for name, args in script
            ]
            return run.model_copy(
                update={"status": RunStatus.REQUIRES_ACTION, "tool_calls": tool_calls}
            )

        self._reply(run.thread_id, run.id, self._responses.get(last, self._default_response))
        return run.model_copy(update={"status": RunStatus.COMPLETED})

    async def create_thread(self) -> str:
        self._record("create_thread")
        thread_id = self._next_id("thread")
        self._messages[thread_id] = []
        return thread_id

    async def add_message(self, thread_id: str, content: str) -> str:
        self._record("add_message", thread_id=thread_id, content=content)
        self._require_thread(thread_id)
        active = self._active_run(thread_id)
        if active is not None:
            raise RunActiveError(
                f"Can't add messages to {thread_id} while a run {active.id} is active.",
                context={"thread_id": thread_id, "run_id": active.id},
            )
        message_id = self._next_id("msg")
        self._messages[thread_id].append({"id": message_id, "role": "user", "content": content})
        return message_id

    async def start_run(self, thread_id: str, assistant_id: str) -> Run:
        self._record("start_run", thread_id=thread_id, assistant_id=assistant_id)
        self._require_thread(thread_id)
        active = self._active_run(thread_id)
        if active is not None:
            raise RunActiveError(
                f"Thread {thread_id} already has an active run {active.id}.",
                context={"thread_id": thread_id, "run_id": active.id},
            )
        run = Run(id=self._next_id("run"), thread_id=thread_id, status=RunStatus.QUEUED)
        self._runs[run.id] = run
        self._thread_runs[thread_id].append(run.id)
        self._polls_left[run.id] = self._pending_polls
        return run

    async def get_run(self, thread_id: str, run_id: str) -> Run:
        self._record("get_run", thread_id=thread_id, run_id=run_id)
        run = self._require_run(thread_id, run_id)
        if run_id in self._pinned:
            return run
        if not run.status.is_active or run.status == RunStatus.REQUIRES_ACTION:
            return run

        if self._polls_left.get(run_id, 0) > 0:
            self._polls_left[run_id] -= 1
            run = run.model_copy(update={"status": RunStatus.IN_PROGRESS})
            self._runs[run_id] = run
            return run

        settled = self._settled.pop(run_id, None) or self._settle(
            run.model_copy(update={"status": RunStatus.QUEUED})
        )
        self._runs[run_id] = settled
        return settled

    async def get_latest_run(self, thread_id: str) -> Run | None:
        self._record("get_latest_run", thread_id=thread_id)
        runs = self._thread_runs.get(thread_id)
        return self._runs[runs[-1]] if runs else None

    async def get_latest_assistant_message(
        self,
        thread_id: str,
        run_id: str | None = None,
    ) -> AssistantMessage | None:
        self._record("fetch_message", thread_id=thread_id, run_id=run_id)
        for message in reversed(self._messages.get(thread_id, [])):
            if message["role"] != "assistant":
                continue
            if run_id is None or message["run_id"] == run_id:
                return AssistantMessage(id=message["id"], content=message["content"])
        return None

    async def submit_tool_outputs(
        self,
        thread_id: str,
        run_id: str,
        outputs: list[ToolOutput],
    ) -> Run:
        self._record(
            "submit_tool_outputs",
            thread_id=thread_id,
            run_id=run_id,
            tool_call_ids=[o.tool_call_id for o in outputs],
        )
        run = self._require_run(thread_id, run_id)
        if run.status != RunStatus.REQUIRES_ACTION:
            raise ProviderError(
                f"Run {run_id} is not waiting for tool outputs (status {run.status.value})",
                retryable=False,
                context={"thread_id": thread_id, "run_id": run_id},
            )

        self._submitted.setdefault(run_id, []).extend(outputs)
        self._reply(thread_id, run_id, self._tool_reply)
        self._settled[run_id] = run.model_copy(
            update={"status": RunStatus.COMPLETED, "tool_calls": []}
        )
        self._polls_left[run_id] = self._pending_polls
        run = run.model_copy(update={"status": RunStatus.QUEUED, "tool_calls": []})
        self._runs[run_id] = run
        return run

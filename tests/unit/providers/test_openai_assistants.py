"""Tests for the OpenAI Assistants provider."""

from types import SimpleNamespace

import httpx
import openai
import pytest

from toolrelay.errors import ProviderError, RunActiveError
from toolrelay.providers.models import RunStatus, ToolOutput
from toolrelay.providers.openai_assistants import (
    OpenAIAssistantsProvider,
    _to_run,
    map_openai_error,
)

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/threads")


def _status_error(cls, status: int, message: str):
    return cls(message, response=httpx.Response(status, request=REQUEST), body=None)


def _raw_run(status: str = "requires_action", **overrides):
    tool_call = SimpleNamespace(
        id="call_abc",
        function=SimpleNamespace(name="scrape_leads", arguments='{"q": "x"}'),
    )
    values = {
        "id": "run_1",
        "thread_id": "thread_1",
        "status": status,
        "required_action": SimpleNamespace(
            submit_tool_outputs=SimpleNamespace(tool_calls=[tool_call])
        ),
        "last_error": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestMapOpenAIError:
    def test_timeout_is_retryable(self) -> None:
        error = map_openai_error(openai.APITimeoutError(request=REQUEST), "get_run")

        assert error.retryable
        assert error.context["operation"] == "get_run"

    def test_connection_is_retryable(self) -> None:
        error = map_openai_error(openai.APIConnectionError(request=REQUEST), "create_thread")

        assert error.retryable

    def test_rate_limit_is_retryable(self) -> None:
        error = map_openai_error(
            _status_error(openai.RateLimitError, 429, "slow down"), "start_run"
        )

        assert error.retryable

    def test_active_run_detected(self) -> None:
        error = map_openai_error(
            _status_error(
                openai.BadRequestError,
                400,
                "Can't add messages to thread_1 while a run run_1 is active.",
            ),
            "add_message",
            thread_id="thread_1",
        )

        assert isinstance(error, RunActiveError)
        assert not error.retryable
        assert error.context["thread_id"] == "thread_1"

    def test_other_bad_request_is_final(self) -> None:
        error = map_openai_error(
            _status_error(openai.BadRequestError, 400, "invalid assistant"), "start_run"
        )

        assert not isinstance(error, RunActiveError)
        assert not error.retryable
        assert error.context["status_code"] == 400

    def test_server_error_is_retryable(self) -> None:
        error = map_openai_error(
            _status_error(openai.InternalServerError, 500, "oops"), "get_run"
        )

        assert error.retryable


class TestToRun:
    def test_reads_required_tool_calls(self) -> None:
        run = _to_run(_raw_run())

        assert run.status == RunStatus.REQUIRES_ACTION
        assert run.tool_calls[0].id == "call_abc"
        assert run.tool_calls[0].function_name == "scrape_leads"
        assert run.tool_calls[0].arguments == '{"q": "x"}'

    def test_failed_run_error(self) -> None:
        run = _to_run(
            _raw_run(
                "failed",
                required_action=None,
                last_error=SimpleNamespace(message="rate_limit_exceeded"),
            )
        )

        assert run.status == RunStatus.FAILED
        assert run.tool_calls == []
        assert run.last_error == "rate_limit_exceeded"


class FakeRuns:
    def __init__(self) -> None:
        self.submitted: list = []

    async def retrieve(self, run_id, thread_id):
        return _raw_run("completed", id=run_id, thread_id=thread_id, required_action=None)

    async def create(self, thread_id, assistant_id):
        raise _status_error(
            openai.BadRequestError, 400, f"Thread {thread_id} while a run run_0 is active."
        )

    async def submit_tool_outputs(self, run_id, thread_id, tool_outputs):
        self.submitted.append(tool_outputs)
        return _raw_run("queued", id=run_id, thread_id=thread_id, required_action=None)


class FakeMessages:
    """Newest first, like order="desc"; ignores run_id so filtering is checked locally."""

    def __init__(self) -> None:
        self.params: list[dict] = []

    async def list(self, **params):
        self.params.append(params)

        def text(value: str) -> list[SimpleNamespace]:
            return [SimpleNamespace(type="text", text=SimpleNamespace(value=value))]

        return SimpleNamespace(data=[
            SimpleNamespace(id="msg_user", role="user", run_id=None, content=text("find")),
            SimpleNamespace(
                id="msg_2", role="assistant", run_id="run_2", content=text("Found 12 leads")
            ),
            SimpleNamespace(
                id="msg_1", role="assistant", run_id="run_1", content=text("Earlier reply")
            ),
        ])


@pytest.fixture
def fake_client() -> SimpleNamespace:
    return SimpleNamespace(
        beta=SimpleNamespace(threads=SimpleNamespace(runs=FakeRuns(), messages=FakeMessages()))
    )


class TestOpenAIAssistantsProvider:
    async def test_get_run(self, fake_client) -> None:
        provider = OpenAIAssistantsProvider(api_key="sk-test", client=fake_client)

        run = await provider.get_run("thread_1", "run_9")

        assert run.id == "run_9"
        assert run.status == RunStatus.COMPLETED

    async def test_start_run_maps_active_run(self, fake_client) -> None:
        provider = OpenAIAssistantsProvider(api_key="sk-test", client=fake_client)

        with pytest.raises(RunActiveError):
            await provider.start_run("thread_1", "asst_1")

    async def test_latest_assistant_message(self, fake_client) -> None:
        provider = OpenAIAssistantsProvider(api_key="sk-test", client=fake_client)

        message = await provider.get_latest_assistant_message("thread_1")

        assert message.id == "msg_2"
        assert message.content == "Found 12 leads"
        assert "run_id" not in fake_client.beta.threads.messages.params[0]

    async def test_latest_message_of_run(self, fake_client) -> None:
        provider = OpenAIAssistantsProvider(api_key="sk-test", client=fake_client)

        message = await provider.get_latest_assistant_message("thread_1", "run_1")

        assert message.id == "msg_1"
        assert message.content == "Earlier reply"
        assert fake_client.beta.threads.messages.params[0]["run_id"] == "run_1"

    async def test_run_without_message(self, fake_client) -> None:
        provider = OpenAIAssistantsProvider(api_key="sk-test", client=fake_client)

        assert await provider.get_latest_assistant_message("thread_1", "run_3") is None

    async def test_submit_tool_outputs(self, fake_client) -> None:
        provider = OpenAIAssistantsProvider(api_key="sk-test", client=fake_client)

        await provider.submit_tool_outputs(
            "thread_1", "run_1", [ToolOutput(tool_call_id="call_abc", output="done")]
        )

        assert fake_client.beta.threads.runs.submitted == [
            [{"tool_call_id": "call_abc", "output": "done"}]
        ]

    def test_provider_error_type(self) -> None:
        assert issubclass(RunActiveError, ProviderError)

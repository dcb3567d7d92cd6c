"""Shared test fixtures for the toolrelay test suite."""

import os
from collections.abc import Callable, Generator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from toolrelay.agents.registry import AgentRegistry
from toolrelay.api.app import create_app
from toolrelay.bootstrap import Runtime, build_runtime
from toolrelay.config.models import AgentConfig
from toolrelay.config.settings import Settings
from toolrelay.pending.models import PendingCall
from toolrelay.pending.stores.inmemory import InMemoryPendingCallStore

WEBHOOK_URL = "https://hooks.example.com/brenden"


@pytest.fixture
def test_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory for testing."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def mock_toml_files(test_config_dir: Path) -> Callable[[dict[str, str]], None]:
    """Factory fixture to create TOML files in the test config directory.

    Usage:
        def test_something(mock_toml_files):
            mock_toml_files({
                "default.toml": "app_name = 'test'",
                "development.toml": "debug = true",
            })
    """

    def _create_toml_files(files: dict[str, str]) -> None:
        for filename, content in files.items():
            toml_file = test_config_dir / filename
            toml_file.write_text(content)

    return _create_toml_files


class EnvOverrideContext:
    """Context manager for temporarily setting environment variables."""

    def __init__(self, overrides: dict[str, str]) -> None:
        self.overrides = overrides
        self.original_env: dict[str, str | None] = {}

    def __enter__(self) -> None:
        for key, value in self.overrides.items():
            self.original_env[key] = os.environ.get(key)
            os.environ[key] = value

    def __exit__(self, *args: Any) -> None:
        for key in self.overrides:
            if self.original_env[key] is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = self.original_env[key]


@pytest.fixture
def env_override() -> Generator[Callable[[dict[str, str]], EnvOverrideContext], None, None]:
    """Context manager for temporarily setting environment variables.

    Usage:
        def test_something(env_override):
            with env_override({"TOOLRELAY_DEBUG": "true"}):
                # test code here
    """

    def _env_override(overrides: dict[str, str]) -> EnvOverrideContext:
        return EnvOverrideContext(overrides)

    yield _env_override


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Clear the settings cache and loaded TOML before and after each test."""
    from toolrelay.config import get_settings
    from toolrelay.config.settings import set_toml_config

    get_settings.cache_clear()
    set_toml_config({})
    yield
    get_settings.cache_clear()
    set_toml_config({})


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


class FakeExecutor:
    """Scripted external executor behind httpx.MockTransport.

    Each request consumes the next scripted reply: an int status code or
    an exception to raise. Once the script is exhausted every request gets
    200.
    """

    def __init__(self, script: list[int | Exception] | None = None) -> None:
        self.script = list(script or [])
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.script.pop(0) if self.script else 200
        if isinstance(reply, Exception):
            raise reply
        return httpx.Response(reply, json={"received": reply < 400})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def agents() -> dict[str, AgentConfig]:
    return {
        "brenden": AgentConfig(
            name="AI Brenden",
            role="lead scraper",
            assistant_id="asst_brenden",
            webhook_url=WEBHOOK_URL,
        ),
        "angel": AgentConfig(
            name="AI Angel",
            role="voice caller",
            assistant_id="asst_angel_placeholder",
            webhook_url="https://hooks.example.com/angel_webhook_placeholder",
        ),
        "nova": AgentConfig(
            name="AI Nova",
            role="researcher",
            assistant_id="asst_nova",
            webhook_url=None,
        ),
    }


@pytest.fixture
def registry(agents: dict[str, AgentConfig]) -> AgentRegistry:
    return AgentRegistry(agents)


@pytest.fixture
def make_settings(agents: dict[str, AgentConfig]) -> Callable[..., Settings]:
    """Factory for Settings suited to tests: mock provider, no rate limit, no sweeper."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "environment": "test",
            "provider": {"kind": "mock"},
            "api": {"rate_limit": {"enabled": False}},
            "sweeper": {"enabled": False},
            "agents": agents,
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def store() -> InMemoryPendingCallStore:
    return InMemoryPendingCallStore()


@pytest.fixture
def make_call() -> Callable[..., PendingCall]:
    """Factory for PendingCall instances with sensible defaults."""

    def _make(**overrides: Any) -> PendingCall:
        values: dict[str, Any] = {
            "id": "call_1",
            "thread_id": "thread_1",
            "run_id": "run_1",
            "agent_id": "brenden",
            "agent_name": "AI Brenden",
            "function_name": "scrape_leads",
            "arguments": {"query": "dentists"},
            "endpoint": WEBHOOK_URL,
            "created_at": datetime.now(UTC),
        }
        values.update(overrides)
        return PendingCall(**values)

    return _make


@pytest.fixture
def build_app(
    make_settings: Callable[..., Settings],
    executor: FakeExecutor,
    sleeps: SleepRecorder,
) -> Callable[..., tuple[FastAPI, Runtime]]:
    """Factory for an app wired to the mock provider and the fake executor."""

    def _build(**overrides: Any) -> tuple[FastAPI, Runtime]:
        runtime = build_runtime(
            make_settings(**overrides),
            http_client=executor.client(),
            sleep=sleeps,
        )
        return create_app(runtime=runtime), runtime

    return _build


@pytest.fixture
def client(build_app: Callable[..., tuple[FastAPI, Runtime]]) -> Generator[TestClient, None, None]:
    """Test client for an app with debug routes enabled."""
    app, _ = build_app(debug=True)
    with TestClient(app) as client:
        yield client

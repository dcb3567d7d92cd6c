"""Tests for runtime wiring."""

from unittest.mock import AsyncMock

import pytest

from toolrelay.bootstrap import build_runtime
from toolrelay.errors import ConfigurationError
from toolrelay.providers import MockConversationProvider, OpenAIAssistantsProvider


class TestBuildRuntime:
    def test_mock_provider(self, make_settings) -> None:
        runtime = build_runtime(make_settings())

        assert isinstance(runtime.provider, MockConversationProvider)
        assert runtime.require_orchestrator() is runtime.orchestrator
        assert runtime.registry.ids() == ["brenden", "angel", "nova"]

    def test_openai_key_from_environment(self, make_settings, monkeypatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test-environment")

        runtime = build_runtime(make_settings(provider={"kind": "openai"}))

        assert isinstance(runtime.provider, OpenAIAssistantsProvider)

    def test_demo_mode_without_key(self, make_settings, monkeypatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        runtime = build_runtime(make_settings(provider={"kind": "openai"}))

        assert runtime.provider is None
        assert not runtime.provider_configured
        with pytest.raises(ConfigurationError, match="demo mode"):
            runtime.require_orchestrator()

    def test_production_requires_key(self, make_settings, monkeypatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(ConfigurationError, match="API key"):
            build_runtime(make_settings(environment="production", provider={"kind": "openai"}))

    async def test_aclose(self, make_settings, executor) -> None:
        runtime = build_runtime(make_settings(), http_client=executor.client())
        runtime.provider.close = AsyncMock()

        await runtime.aclose()

        runtime.provider.close.assert_awaited_once()
        assert not runtime.sweeper.running

"""Wiring of the relay components from settings.

Every component is constructed explicitly and handed its collaborators;
nothing is a module-level singleton. The API keeps the resulting Runtime
on app.state.

Example usage:

    from toolrelay.bootstrap import build_runtime
    from toolrelay.config import get_settings

    runtime = build_runtime(get_settings())
    outcome = await runtime.require_orchestrator().start_turn("Hello!", "brenden")
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

from toolrelay.agents.registry import AgentRegistry
from toolrelay.config.settings import Settings
from toolrelay.correlation.outbox import ResultOutbox
from toolrelay.correlation.protocol import CorrelationProtocol
from toolrelay.dispatch.engine import DispatchEngine
from toolrelay.errors import ConfigurationError
from toolrelay.observability.logging import get_logger
from toolrelay.orchestration.orchestrator import RunOrchestrator
from toolrelay.pending.store import PendingCallStore
from toolrelay.pending.stores.inmemory import InMemoryPendingCallStore
from toolrelay.providers import ConversationProvider, create_provider
from toolrelay.sweeper.sweeper import CleanupSweeper

logger = get_logger(__name__)


@dataclass
class Runtime:
    """All long-lived components of one relay process."""

    settings: Settings
    store: PendingCallStore
    registry: AgentRegistry
    provider: ConversationProvider | None
    dispatcher: DispatchEngine
    correlator: CorrelationProtocol
    outbox: ResultOutbox
    orchestrator: RunOrchestrator | None
    sweeper: CleanupSweeper

    @property
    def provider_configured(self) -> bool:
        return self.provider is not None

    def require_orchestrator(self) -> RunOrchestrator:
        """Orchestrator, or ConfigurationError when running without a provider."""
        if self.orchestrator is None:
            raise ConfigurationError(
                "Conversation provider is not configured (demo mode)",
                context={"provider": self.settings.provider.kind},
            )
        return self.orchestrator

    async def aclose(self) -> None:
        await self.sweeper.stop()
        await self.dispatcher.close()
        if self.provider is not None:
            await self.provider.close()


def build_runtime(
    settings: Settings,
    *,
    provider: ConversationProvider | None = None,
    http_client: httpx.AsyncClient | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Runtime:
    """Construct a Runtime from settings.

    Args:
        settings: Loaded settings
        provider: Use this provider instead of building one from settings
        http_client: Transport for tool-call delivery
        sleep: Wait function for backoff and provider retries

    Raises:
        ConfigurationError: If the OpenAI provider has no API key and the
            environment is production
    """
    if provider is None:
        try:
            provider = create_provider(settings.provider)
        except ConfigurationError as e:
            if settings.environment == "production":
                logger.error("provider_not_configured", error=e.detail)
                raise
            logger.warning(
                "demo_mode",
                reason=e.detail,
                environment=settings.environment,
            )

    store = InMemoryPendingCallStore(
        processed_id_retention=settings.correlation.processed_id_retention,
    )
    registry = AgentRegistry(settings.agents)
    dispatcher = DispatchEngine(
        store,
        registry,
        settings.dispatch,
        client=http_client,
        sleep=sleep,
    )
    correlator = CorrelationProtocol(store, settings.correlation)
    outbox = ResultOutbox()

    orchestrator = None
    if provider is not None:
        orchestrator = RunOrchestrator(
            provider=provider,
            registry=registry,
            dispatcher=dispatcher,
            correlator=correlator,
            outbox=outbox,
            store=store,
            provider_config=settings.provider,
            config=settings.orchestration,
            sleep=sleep,
        )

    sweeper = CleanupSweeper(store, outbox, settings.sweeper)

    logger.info(
        "runtime_built",
        provider=provider.provider_name if provider else None,
        agents=registry.ids(),
    )
    return Runtime(
        settings=settings,
        store=store,
        registry=registry,
        provider=provider,
        dispatcher=dispatcher,
        correlator=correlator,
        outbox=outbox,
        orchestrator=orchestrator,
        sweeper=sweeper,
    )

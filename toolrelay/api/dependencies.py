"""Dependency injection for API routes.

Routes receive the Runtime built at app creation through these
dependencies; tests override them via app.dependency_overrides or pass a
prepared Runtime to create_app.
"""

from typing import Annotated

from fastapi import Depends, Request

from toolrelay.bootstrap import Runtime
from toolrelay.config.settings import Settings
from toolrelay.orchestration.orchestrator import RunOrchestrator


def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime


RuntimeDep = Annotated[Runtime, Depends(get_runtime)]


def get_settings(runtime: RuntimeDep) -> Settings:
    return runtime.settings


SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_orchestrator(runtime: RuntimeDep) -> RunOrchestrator:
    """Orchestrator; ConfigurationError (503) when no provider is configured."""
    return runtime.require_orchestrator()


OrchestratorDep = Annotated[RunOrchestrator, Depends(get_orchestrator)]

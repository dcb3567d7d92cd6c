"""Root settings model for toolrelay configuration."""

from typing import Any, Literal

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from toolrelay.config.models.agents import AgentConfig
from toolrelay.config.models.api import APIConfig
from toolrelay.config.models.correlation import CorrelationConfig
from toolrelay.config.models.dispatch import DispatchConfig
from toolrelay.config.models.observability import ObservabilityConfig
from toolrelay.config.models.orchestration import OrchestrationConfig
from toolrelay.config.models.provider import ProviderConfig
from toolrelay.config.models.sweeper import SweeperConfig

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
Environment = Literal["development", "test", "production"]

# TOML config consumed by the custom settings source
_toml_config: dict[str, Any] = {}


def set_toml_config(config: dict[str, Any]) -> None:
    """Set the TOML configuration to be used by Settings."""
    global _toml_config
    _toml_config = config


class TomlConfigSettingsSource(PydanticBaseSettingsSource):
    """Settings source that reads from the loaded TOML configuration."""

    def get_field_value(
        self, field: Any, field_name: str  # noqa: ARG002
    ) -> tuple[Any, str, bool]:
        value = _toml_config.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        return _toml_config.copy()


class Settings(BaseSettings):
    """Root configuration object containing all nested configuration sections."""

    model_config = SettingsConfigDict(
        env_prefix="TOOLRELAY_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="toolrelay", description="Application name for logging")
    environment: Environment = Field(default="development", description="Deployment environment")
    debug: bool = Field(default=False, description="Enable debug endpoints")
    log_level: LogLevel = Field(default="INFO", description="Logging level")

    api: APIConfig = Field(default_factory=APIConfig, description="HTTP API configuration")
    provider: ProviderConfig = Field(
        default_factory=ProviderConfig,
        description="Conversation provider configuration",
    )
    dispatch: DispatchConfig = Field(
        default_factory=DispatchConfig,
        description="Tool-call delivery configuration",
    )
    orchestration: OrchestrationConfig = Field(
        default_factory=OrchestrationConfig,
        description="Per-step provider retry budgets",
    )
    correlation: CorrelationConfig = Field(
        default_factory=CorrelationConfig,
        description="Tool result correlation configuration",
    )
    sweeper: SweeperConfig = Field(
        default_factory=SweeperConfig,
        description="Pending-call cleanup configuration",
    )
    agents: dict[str, AgentConfig] = Field(
        default_factory=dict,
        description="Agents keyed by agent id",
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Priority: constructor arguments, TOOLRELAY_* env vars, TOML, defaults."""
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls),
        )

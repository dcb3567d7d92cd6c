"""Configuration loading for toolrelay.

Configuration is loaded from TOML files with environment variable overrides.

Usage:
    from toolrelay.config import get_settings

    settings = get_settings()
    max_attempts = settings.dispatch.max_attempts
"""

from functools import lru_cache

from toolrelay.config.loader import load_config
from toolrelay.config.settings import Settings, set_toml_config
from toolrelay.observability.logging import get_logger

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the cached settings instance.

    Configuration is loaded in this order:
    1. Pydantic model defaults (in code)
    2. config/default.toml (base configuration)
    3. config/{TOOLRELAY_ENV}.toml (environment overrides)
    4. TOOLRELAY_* environment variables (runtime overrides)

    Call `get_settings.cache_clear()` to reload configuration.
    """
    try:
        set_toml_config(load_config())
    except FileNotFoundError as e:
        logger.warning("config_file_not_found", error=str(e))
        set_toml_config({})

    return Settings()


def reload_settings() -> Settings:
    """Clear the settings cache and reload configuration."""
    get_settings.cache_clear()
    return get_settings()


__all__ = ["get_settings", "reload_settings", "Settings"]

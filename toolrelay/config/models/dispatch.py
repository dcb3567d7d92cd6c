"""Tool-call delivery configuration models."""

from pydantic import BaseModel, Field, SecretStr


class DispatchConfig(BaseModel):
    """Delivery retry policy and transport settings."""

    max_attempts: int = Field(default=5, gt=0, description="Delivery attempts per tool call")
    base_delay_ms: int = Field(default=2000, ge=0, description="Backoff delay after attempt 1")
    max_delay_ms: int = Field(default=10000, ge=0, description="Backoff delay ceiling")
    timeout_seconds: float = Field(default=60.0, gt=0, description="Per-delivery timeout")
    max_redirects: int = Field(default=3, ge=0, description="Redirects followed per delivery")
    signing_secret: SecretStr | None = Field(
        default=None,
        description="HMAC secret used to sign delivered payloads",
    )
    user_agent: str = Field(default="toolrelay/1.0", description="User-Agent header")
    health_timeout_seconds: float = Field(default=15.0, gt=0, description="Health probe timeout")

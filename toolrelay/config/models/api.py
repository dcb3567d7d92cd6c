"""HTTP API configuration models."""

from pydantic import BaseModel, Field


class RateLimitConfig(BaseModel):
    """Per-client request rate limiting."""

    enabled: bool = Field(default=True, description="Enable rate limiting")
    max_requests: int = Field(default=100, gt=0, description="Requests allowed per window")
    window_seconds: int = Field(default=900, gt=0, description="Sliding window size")


class APIConfig(BaseModel):
    """HTTP API configuration."""

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3000, gt=0, description="Bind port")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")
    cors_allow_credentials: bool = Field(default=False, description="Allow CORS credentials")
    max_message_length: int = Field(default=4000, gt=0, description="Maximum user message length")
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)

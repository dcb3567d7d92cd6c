"""Pending-call cleanup configuration."""

from pydantic import BaseModel, Field


class SweeperConfig(BaseModel):
    """TTL thresholds and schedule for the cleanup sweeper."""

    enabled: bool = Field(default=True, description="Run the periodic sweep")
    interval_seconds: float = Field(default=900.0, gt=0, description="Time between sweeps")
    max_age_seconds: float = Field(
        default=86_400.0,
        gt=0,
        description="Entries older than this are evicted regardless of status",
    )
    failed_max_age_seconds: float = Field(
        default=7_200.0,
        gt=0,
        description="Failed entries older than this are archived",
    )
    archive_size: int = Field(default=500, ge=0, description="Archived failed calls kept")

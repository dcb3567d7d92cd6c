"""Run orchestration retry budgets."""

from pydantic import BaseModel, Field


class StepRetryConfig(BaseModel):
    """Retry budget for one provider step."""

    attempts: int = Field(default=3, gt=0, description="Attempts before giving up")
    delay_seconds: float = Field(default=1.0, ge=0, description="Wait between attempts")
    timeout_seconds: float | None = Field(
        default=30.0,
        gt=0,
        description="Per-attempt timeout (None = bounded by the call itself)",
    )


class OrchestrationConfig(BaseModel):
    """Retry budgets for each provider step of a turn."""

    check_run: StepRetryConfig = Field(
        default_factory=lambda: StepRetryConfig(attempts=1, delay_seconds=0.0)
    )
    create_thread: StepRetryConfig = Field(default_factory=StepRetryConfig)
    add_message: StepRetryConfig = Field(default_factory=StepRetryConfig)
    start_run: StepRetryConfig = Field(default_factory=StepRetryConfig)
    poll: StepRetryConfig = Field(
        default_factory=lambda: StepRetryConfig(attempts=2, delay_seconds=2.0, timeout_seconds=None)
    )
    fetch_message: StepRetryConfig = Field(default_factory=StepRetryConfig)
    submit_outputs: StepRetryConfig = Field(
        default_factory=lambda: StepRetryConfig(attempts=5, delay_seconds=2.0)
    )
    resume_poll: StepRetryConfig = Field(
        default_factory=lambda: StepRetryConfig(attempts=3, delay_seconds=3.0, timeout_seconds=None)
    )
    resume_fetch_message: StepRetryConfig = Field(
        default_factory=lambda: StepRetryConfig(attempts=5, delay_seconds=1.0)
    )

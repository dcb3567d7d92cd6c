"""Tool result correlation configuration."""

from pydantic import BaseModel, Field

DEFAULT_TRUNCATION_MARKER = "\n\n[Output truncated due to size limit]"


class CorrelationConfig(BaseModel):
    """How inbound tool results are normalized and trusted."""

    max_output_chars: int = Field(default=100_000, gt=0, description="Output size threshold")
    truncation_marker: str = Field(
        default=DEFAULT_TRUNCATION_MARKER,
        description="Appended to truncated output",
    )
    accept_uncorrelated: bool = Field(
        default=True,
        description="Accept structurally valid results with no pending call",
    )
    processed_id_retention: int = Field(
        default=10_000,
        gt=0,
        description="Processed tool call ids remembered for duplicate rejection",
    )

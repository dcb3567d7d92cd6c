"""Error response models for consistent API error handling."""

from enum import Enum
from typing import Any

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Machine-readable error codes.

    Values match the `kind` of the corresponding RelayError.
    """

    CONFIGURATION_ERROR = "configuration_error"
    VALIDATION_ERROR = "validation_error"
    CORRELATION_ERROR = "correlation_error"
    DUPLICATE_RESULT = "duplicate_result"
    DELIVERY_ERROR = "delivery_error"
    PROVIDER_ERROR = "provider_error"
    RUN_ACTIVE = "run_active"
    PROCESSING_ERROR = "processing_error"
    NOT_FOUND = "not_found"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    INTERNAL_ERROR = "internal_error"


class ErrorDetail(BaseModel):
    """Field-level error information."""

    field: str | None = None
    """The field that caused the error, if applicable."""

    message: str
    """Human-readable error description."""


class ErrorBody(BaseModel):
    """Error body content for API error responses."""

    code: ErrorCode
    """Machine-readable error code."""

    message: str
    """Human-readable error message."""

    details: list[ErrorDetail] | None = None
    """Individual validation problems."""

    context: dict[str, Any] | None = None
    """Correlation identifiers known at the point of failure."""


class ErrorResponse(BaseModel):
    """Standard error response format for all API errors.

    Example:
        {
            "error": {
                "code": "correlation_error",
                "message": "Tool result does not match ...",
                "context": {"tool_call_id": "call_1", "thread_id": "thread_1"}
            }
        }
    """

    error: ErrorBody

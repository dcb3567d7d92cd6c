"""API request/response models."""

from toolrelay.api.models.errors import ErrorBody, ErrorCode, ErrorDetail, ErrorResponse
from toolrelay.api.models.health import ComponentHealth, HealthResponse
from toolrelay.api.models.requests import AskRequest, SimulateToolResultRequest

__all__ = [
    "AskRequest",
    "ComponentHealth",
    "ErrorBody",
    "ErrorCode",
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "SimulateToolResultRequest",
]

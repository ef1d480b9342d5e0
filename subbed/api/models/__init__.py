"""API models module."""

from subbed.api.models.errors import (
    ErrorCodes,
    ErrorResponse,
    InternalServerErrorResponse,
    NotFoundErrorResponse,
    UpstreamErrorResponse,
    ValidationErrorResponse,
)
from subbed.api.models.requests import (
    OkResponse,
    SettingsResponse,
    SubscriptionCreateRequest,
    SubscriptionResponse,
)

__all__ = [
    "ErrorCodes",
    "ErrorResponse",
    "InternalServerErrorResponse",
    "NotFoundErrorResponse",
    "UpstreamErrorResponse",
    "ValidationErrorResponse",
    "OkResponse",
    "SettingsResponse",
    "SubscriptionCreateRequest",
    "SubscriptionResponse",
]

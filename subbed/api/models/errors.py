"""Error response models for the API.

All errors include a request_id for tracing and debugging.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response model.

    Attributes:
        error: Error type identifier (e.g., "VALIDATION_ERROR", "NOT_FOUND")
        error_code: Machine-readable error code for programmatic handling
        message: Human-readable error message
        details: Additional error context
        request_id: Unique request identifier for tracing
        timestamp: ISO 8601 timestamp of when the error occurred
    """

    error: str = Field(
        ...,
        description="Error type identifier",
        examples=["NOT_FOUND"],
    )
    error_code: str = Field(
        ...,
        description="Machine-readable error code",
        examples=["CHANNEL_NOT_RESOLVED"],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["could not resolve channel id"],
    )
    details: dict[str, Any] | None = Field(
        default=None,
        description="Additional error details and context",
    )
    request_id: str | None = Field(
        default=None,
        description="Unique request identifier for tracing",
    )
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="ISO 8601 timestamp of error occurrence",
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "error": "NOT_FOUND",
                "error_code": "CHANNEL_NOT_RESOLVED",
                "message": "could not resolve channel id",
                "details": {"input": "@unknown-handle"},
                "request_id": "6f1c2a4e-8d0b-4a59-9a43-0c6d1f3e2b7a",
                "timestamp": "2024-01-15T10:30:00Z",
            }
        }
    }


class ValidationErrorResponse(ErrorResponse):
    """Validation error response for request or settings validation failures."""

    error: str = Field(default="VALIDATION_ERROR", frozen=True)
    error_code: str = Field(default="VALIDATION_ERROR")
    details: dict[str, Any] = Field(  # type: ignore[assignment]
        default_factory=dict,
        description="Validation errors by field",
    )


class NotFoundErrorResponse(ErrorResponse):
    """Not found error response, e.g. for unresolvable channel input."""

    error: str = Field(default="NOT_FOUND", frozen=True)


class UpstreamErrorResponse(ErrorResponse):
    """Upstream feed source failed."""

    error: str = Field(default="UPSTREAM_ERROR", frozen=True)
    error_code: str = Field(default="FEED_FETCH_FAILED")


class InternalServerErrorResponse(ErrorResponse):
    """Internal server error response for unexpected failures."""

    error: str = Field(default="INTERNAL_SERVER_ERROR", frozen=True)
    error_code: str = Field(default="INTERNAL_ERROR", frozen=True)
    message: str = Field(
        default="An unexpected error occurred. Please try again later.",
        description="Generic error message",
    )


class ErrorCodes:
    """Standardized error codes for the API."""

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_SETTINGS = "INVALID_SETTINGS"
    INVALID_CHANNEL_ID = "INVALID_CHANNEL_ID"
    MISSING_PARAMETER = "MISSING_PARAMETER"
    INVALID_PARAMETER = "INVALID_PARAMETER"

    # Not found errors
    NOT_FOUND = "NOT_FOUND"
    CHANNEL_NOT_RESOLVED = "CHANNEL_NOT_RESOLVED"

    # Rate limiting
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Server errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"
    FEED_FETCH_FAILED = "FEED_FETCH_FAILED"
    FEED_UNAVAILABLE = "FEED_UNAVAILABLE"

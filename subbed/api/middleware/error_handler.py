"""Error handlers for standardized error responses.

Maps application exceptions to ErrorResponse bodies:

- ResolutionError -> 404
- SettingsValidationError and request validation -> 422
- FetchError / FeedUnavailableError -> 502
- HTTPException -> its own status
- anything else -> 500 with the stringified error in ``details``
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from subbed.api.middleware.logging import get_request_id
from subbed.api.models.errors import (
    ErrorCodes,
    ErrorResponse,
    InternalServerErrorResponse,
    NotFoundErrorResponse,
    UpstreamErrorResponse,
    ValidationErrorResponse,
)
from subbed.core.exceptions import (
    FeedUnavailableError,
    FetchError,
    ResolutionError,
    SettingsValidationError,
    StorageError,
)

logger = logging.getLogger(__name__)

# HTTP status -> (error type, error code) for HTTPException
_HTTP_ERROR_TYPES: dict[int, tuple[str, str]] = {
    status.HTTP_400_BAD_REQUEST: ("BAD_REQUEST", ErrorCodes.INVALID_PARAMETER),
    status.HTTP_404_NOT_FOUND: ("NOT_FOUND", ErrorCodes.NOT_FOUND),
    status.HTTP_429_TOO_MANY_REQUESTS: ("RATE_LIMIT_EXCEEDED", ErrorCodes.RATE_LIMIT_EXCEEDED),
}


def _validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]


def _request_context(request: Request, request_id: str) -> dict[str, Any]:
    return {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
    }


class ErrorHandlerMiddleware:
    """Global error handler for the FastAPI application.

    Usage:
        app = FastAPI()
        setup_error_handler(app)
    """

    def __init__(self, app: FastAPI) -> None:
        """Initialize error handlers.

        Args:
            app: FastAPI application instance
        """
        self.app = app
        self._register_exception_handlers()

    def _register_exception_handlers(self) -> None:
        """Register exception handlers for different exception types."""
        self.app.add_exception_handler(Exception, self._handle_generic_exception)
        self.app.add_exception_handler(RequestValidationError, self._handle_validation_error)
        self.app.add_exception_handler(
            SettingsValidationError, self._handle_settings_validation_error
        )
        self.app.add_exception_handler(ResolutionError, self._handle_resolution_error)
        self.app.add_exception_handler(FetchError, self._handle_fetch_error)
        self.app.add_exception_handler(StorageError, self._handle_storage_error)
        self.app.add_exception_handler(StarletteHTTPException, self._handle_http_exception)

    async def _handle_generic_exception(self, request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions with a generic 500.

        Args:
            request: FastAPI request object
            exc: The exception that was raised

        Returns:
            JSONResponse with standardized error format
        """
        request_id = get_request_id(request)
        logger.exception("Unhandled exception", extra=_request_context(request, request_id))

        error_response = InternalServerErrorResponse(
            request_id=request_id,
            details={"error": str(exc), "error_type": type(exc).__name__},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response.model_dump(),
        )

    async def _handle_storage_error(self, request: Request, exc: Exception) -> JSONResponse:
        request_id = get_request_id(request)
        logger.error("Storage error: %s", exc, extra=_request_context(request, request_id))

        error_response = ErrorResponse(
            error="INTERNAL_SERVER_ERROR",
            error_code=ErrorCodes.STORAGE_ERROR,
            message="Storage backend failed",
            details={"error": str(exc)},
            request_id=request_id,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response.model_dump(),
        )

    async def _handle_validation_error(self, request: Request, exc: Exception) -> JSONResponse:
        """Handle validation errors from request parsing.

        Args:
            request: FastAPI request object
            exc: Validation exception

        Returns:
            JSONResponse with validation error details
        """
        request_id = get_request_id(request)
        errors = _validation_errors(exc)  # type: ignore[arg-type]

        logger.info(
            "Validation error",
            extra={**_request_context(request, request_id), "validation_errors": errors},
        )

        error_response = ValidationErrorResponse(
            message="Request validation failed",
            details={"errors": errors},
            request_id=request_id,
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_response.model_dump(),
        )

    async def _handle_settings_validation_error(
        self, request: Request, exc: Exception
    ) -> JSONResponse:
        request_id = get_request_id(request)
        errors = getattr(exc, "errors", [])

        logger.info(
            "Settings rejected",
            extra={**_request_context(request, request_id), "validation_errors": errors},
        )

        error_response = ValidationErrorResponse(
            error_code=ErrorCodes.INVALID_SETTINGS,
            message=str(exc),
            details={"errors": errors},
            request_id=request_id,
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_response.model_dump(),
        )

    async def _handle_resolution_error(self, request: Request, exc: Exception) -> JSONResponse:
        request_id = get_request_id(request)
        logger.info("Resolution failed: %s", exc, extra=_request_context(request, request_id))

        error_response = NotFoundErrorResponse(
            error_code=ErrorCodes.CHANNEL_NOT_RESOLVED,
            message=str(exc),
            request_id=request_id,
        )
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=error_response.model_dump(),
        )

    async def _handle_fetch_error(self, request: Request, exc: Exception) -> JSONResponse:
        request_id = get_request_id(request)
        logger.warning("Upstream fetch failed: %s", exc, extra=_request_context(request, request_id))

        details: dict[str, Any] = {}
        channel_id = getattr(exc, "channel_id", None)
        upstream_status = getattr(exc, "status_code", None)
        if channel_id:
            details["channel_id"] = channel_id
        if upstream_status is not None:
            details["status"] = upstream_status

        error_code = (
            ErrorCodes.FEED_UNAVAILABLE
            if isinstance(exc, FeedUnavailableError)
            else ErrorCodes.FEED_FETCH_FAILED
        )
        error_response = UpstreamErrorResponse(
            error_code=error_code,
            message=str(exc),
            details=details or None,
            request_id=request_id,
        )
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=error_response.model_dump(),
        )

    async def _handle_http_exception(self, request: Request, exc: Exception) -> JSONResponse:
        """Handle HTTP exceptions (400, 404, etc.).

        Args:
            request: FastAPI request object
            exc: HTTP exception

        Returns:
            JSONResponse with appropriate error format
        """
        request_id = get_request_id(request)

        status_code = getattr(exc, "status_code", status.HTTP_500_INTERNAL_SERVER_ERROR)
        detail = getattr(exc, "detail", str(exc))
        error_type, error_code = _HTTP_ERROR_TYPES.get(
            status_code, ("HTTP_ERROR", f"HTTP_{status_code}")
        )

        error_response = ErrorResponse(
            error=error_type,
            error_code=error_code,
            message=str(detail),
            request_id=request_id,
        )

        logger.info(
            "HTTP %d error",
            status_code,
            extra={**_request_context(request, request_id), "status_code": status_code},
        )

        return JSONResponse(
            status_code=status_code,
            content=error_response.model_dump(),
            headers=getattr(exc, "headers", None),
        )


def setup_error_handler(app: FastAPI) -> None:
    """Register global exception handlers on the application.

    Args:
        app: FastAPI application instance
    """
    ErrorHandlerMiddleware(app)
    logger.debug("Error handlers registered")

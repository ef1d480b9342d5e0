"""Logging middleware for request/response tracking.

Adds a request ID to every request (reusing an upstream ``X-Request-ID``
when present) and logs each response with its status and duration.
"""

import logging
import time
import uuid
from collections.abc import Callable
from typing import Any

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from subbed.core.logging_config import log_api_request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for structured request/response logging.

    Usage:
        app = FastAPI()
        app.add_middleware(LoggingMiddleware)
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Any],
    ) -> Response:
        """Process request and log details.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware/handler in chain

        Returns:
            HTTP response with request ID header
        """
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"

        start_time = time.perf_counter()
        logger.debug(
            "Request started",
            extra={
                "request_id": request_id,
                "method": method,
                "path": path,
                "query": str(request.url.query),
                "client_ip": client_ip,
            },
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.exception(
                "Request failed",
                extra={
                    "request_id": request_id,
                    "method": method,
                    "path": path,
                    "duration_ms": round(duration_ms, 2),
                    "error_type": type(exc).__name__,
                },
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id
        log_api_request(
            logger,
            method,
            path,
            response.status_code,
            round(duration_ms, 2),
            client_ip=client_ip,
            request_id=request_id,
        )
        return response


def setup_logging_middleware(app: FastAPI) -> None:
    """Set up logging middleware for the application.

    Args:
        app: FastAPI application instance
    """
    app.add_middleware(LoggingMiddleware)
    logger.debug("Logging middleware initialized")


def get_request_id(request: Request) -> str:
    """Get request ID from request state or headers.

    Args:
        request: FastAPI request object

    Returns:
        Request ID string
    """
    return getattr(request.state, "request_id", None) or request.headers.get(
        REQUEST_ID_HEADER,
        str(uuid.uuid4()),
    )

"""Middleware module for the API.

This module provides middleware components for:
- Error handling and standardization
- Request/response logging and request ID tracking
- Rate limiting
- Prometheus metrics
"""

from subbed.api.middleware.error_handler import ErrorHandlerMiddleware, setup_error_handler
from subbed.api.middleware.logging import (
    LoggingMiddleware,
    get_request_id,
    setup_logging_middleware,
)
from subbed.api.middleware.prometheus import PrometheusMiddleware, setup_prometheus
from subbed.api.middleware.rate_limiter import get_limiter, setup_rate_limiter

__all__ = [
    "ErrorHandlerMiddleware",
    "setup_error_handler",
    "LoggingMiddleware",
    "get_request_id",
    "setup_logging_middleware",
    "PrometheusMiddleware",
    "setup_prometheus",
    "get_limiter",
    "setup_rate_limiter",
]

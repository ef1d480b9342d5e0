"""Prometheus metrics middleware and instrumentation.

This module provides:
- API request metrics
- /metrics endpoint for Prometheus scraping

Pipeline counters (channel fetches, Short classifications, Redis cache
operations) are defined in ``subbed.core.metrics`` and exported through the
same registry.

Usage:
    app = FastAPI()
    setup_prometheus(app, settings)
"""

import logging
import re
import time
from collections.abc import Callable

from fastapi import FastAPI, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

from subbed.core.config import Settings, get_settings
from subbed.core.constants import APP_VERSION, CHANNEL_ID_PATTERN

logger = logging.getLogger(__name__)


# API request metrics
api_requests_total = Counter(
    "api_requests_total",
    "Total number of API requests",
    ["method", "endpoint", "status"],
)

api_request_duration_seconds = Histogram(
    "api_request_duration_seconds",
    "API request latency in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30, float("inf")),
)

# System metrics
app_info = Gauge(
    "app_info",
    "Application information",
    ["version"],
)

_CHANNEL_ID_SEGMENT_RE = re.compile(rf"/{CHANNEL_ID_PATTERN}(?=/|$)")


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware to collect Prometheus metrics for API requests."""

    def __init__(self, app, metrics_path: str = "/metrics") -> None:
        """Initialize middleware.

        Args:
            app: ASGI application
            metrics_path: Path of the scrape endpoint (not instrumented)
        """
        super().__init__(app)
        self.metrics_path = metrics_path

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and collect metrics.

        Args:
            request: FastAPI request object
            call_next: Next middleware/handler

        Returns:
            Response with metrics collected
        """
        if request.url.path == self.metrics_path:
            return await call_next(request)

        start_time = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            duration = time.perf_counter() - start_time
            endpoint = self._normalize_endpoint(request.url.path)
            method = request.method

            api_requests_total.labels(method=method, endpoint=endpoint, status=status_code).inc()
            api_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)

        return response

    def _normalize_endpoint(self, path: str) -> str:
        """Normalize endpoint path for metrics (replace channel IDs)."""
        return _CHANNEL_ID_SEGMENT_RE.sub("/{channel_id}", path)


def setup_prometheus(app: FastAPI, settings: Settings | None = None) -> None:
    """Set up Prometheus metrics and endpoint.

    Args:
        app: FastAPI application
        settings: Application settings (defaults to cached settings)
    """
    settings = settings or get_settings()

    if not settings.prometheus_enabled:
        logger.info("Prometheus metrics disabled")
        return

    app_info.labels(version=APP_VERSION).set(1)

    app.add_middleware(PrometheusMiddleware, metrics_path=settings.prometheus_path)

    @app.get(settings.prometheus_path, include_in_schema=False)
    async def metrics_endpoint() -> Response:
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_latest(REGISTRY),
            status_code=200,
            media_type=CONTENT_TYPE_LATEST,
        )

    logger.debug("Prometheus metrics enabled at %s", settings.prometheus_path)


__all__ = [
    "setup_prometheus",
    "PrometheusMiddleware",
    "api_requests_total",
    "api_request_duration_seconds",
    "app_info",
]

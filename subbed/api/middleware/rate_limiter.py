"""Rate limiting middleware using SlowAPI.

Every route gets the configured default limit, keyed on the client
address. Limits are kept in memory unless ``rate_limit_storage`` is
``"redis"``, in which case they are shared through the configured Redis.

Usage:
    app = FastAPI()
    setup_rate_limiter(app, settings)
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from subbed.api.models.errors import ErrorCodes, ErrorResponse
from subbed.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER = 60


def get_rate_limit_key(request: Request) -> str:
    """Extract rate limit key from request.

    Args:
        request: FastAPI request object

    Returns:
        Rate limit key string
    """
    return f"ip:{get_remote_address(request)}"


def rate_limit_exceeded_handler(
    request: Request,
    exc: RateLimitExceeded,
) -> JSONResponse:
    """Handle rate limit exceeded errors.

    Returns 429 response with a Retry-After header.

    Args:
        request: FastAPI request object
        exc: RateLimitExceeded exception

    Returns:
        JSONResponse with error details
    """
    retry_after = DEFAULT_RETRY_AFTER
    limit = getattr(exc, "limit", None)
    if limit is not None:
        try:
            retry_after = int(limit.limit.get_expiry())
        except (AttributeError, TypeError, ValueError):
            pass

    logger.warning(
        "Rate limit exceeded",
        extra={
            "key": get_rate_limit_key(request),
            "path": request.url.path,
            "retry_after": retry_after,
        },
    )

    error_response = ErrorResponse(
        error="RATE_LIMIT_EXCEEDED",
        error_code=ErrorCodes.RATE_LIMIT_EXCEEDED,
        message="Too many requests. Please slow down.",
        details={"limit": str(exc.detail), "retry_after_seconds": retry_after},
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=error_response.model_dump(),
        headers={"Retry-After": str(retry_after)},
    )


def get_limiter(settings: Settings | None = None) -> Limiter:
    """Create the rate limiter instance.

    Args:
        settings: Application settings (defaults to cached settings)

    Returns:
        Configured Limiter instance
    """
    settings = settings or get_settings()

    if not settings.rate_limit_enabled:
        return Limiter(
            key_func=get_remote_address,
            default_limits=[],
            enabled=False,
        )

    storage_uri = "memory://"
    if settings.rate_limit_storage == "redis" and settings.redis_enabled:
        storage_uri = settings.redis_url

    return Limiter(
        key_func=get_rate_limit_key,
        default_limits=[settings.rate_limit_default],
        storage_uri=storage_uri,
        enabled=True,
    )


def setup_rate_limiter(app: FastAPI, settings: Settings | None = None) -> Limiter:
    """Set up rate limiting middleware.

    Args:
        app: FastAPI application
        settings: Application settings (defaults to cached settings)

    Returns:
        Configured Limiter instance
    """
    settings = settings or get_settings()
    limiter = get_limiter(settings)
    app.state.limiter = limiter

    if not settings.rate_limit_enabled:
        logger.info("Rate limiting is disabled")
        return limiter

    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]
    app.add_middleware(SlowAPIMiddleware)

    logger.info(
        "Rate limiting enabled",
        extra={
            "storage": settings.rate_limit_storage,
            "default_limit": settings.rate_limit_default,
        },
    )
    return limiter


__all__ = [
    "get_limiter",
    "get_rate_limit_key",
    "rate_limit_exceeded_handler",
    "setup_rate_limiter",
]

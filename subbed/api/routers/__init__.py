"""API routers module."""

from subbed.api.routers.feed import router as feed_router
from subbed.api.routers.health import router as health_router
from subbed.api.routers.resolve import router as resolve_router
from subbed.api.routers.settings import router as settings_router
from subbed.api.routers.subscriptions import router as subscriptions_router

__all__ = [
    "feed_router",
    "resolve_router",
    "subscriptions_router",
    "settings_router",
    "health_router",
]

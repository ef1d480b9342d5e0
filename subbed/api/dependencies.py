"""FastAPI dependencies for the API module."""

from fastapi import Request

from subbed.api.services import AppServices
from subbed.channel.resolver import ChannelResolver
from subbed.core.config import Settings
from subbed.feed.aggregator import FeedAggregator
from subbed.storage.base import SettingsStore, SubscriptionStore


def get_services(request: Request) -> AppServices:
    """Dependency to get the application service container.

    Returns:
        AppServices: Services attached to the application state
    """
    return request.app.state.services  # type: ignore[no-any-return]


def get_settings_dep(request: Request) -> Settings:
    """Dependency to get application settings.

    Returns:
        Settings: Settings the application was created with
    """
    return get_services(request).settings


def get_aggregator(request: Request) -> FeedAggregator:
    return get_services(request).aggregator


def get_resolver(request: Request) -> ChannelResolver:
    return get_services(request).resolver


def get_subscription_store(request: Request) -> SubscriptionStore:
    return get_services(request).stores.subscriptions


def get_settings_store(request: Request) -> SettingsStore:
    return get_services(request).stores.settings

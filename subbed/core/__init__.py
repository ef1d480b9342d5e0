"""Core package for the subscription feed service."""

from subbed.core.config import Settings, get_settings
from subbed.core.http_session import create_client, fetch_text, fetch_with_retry
from subbed.core.logging_config import (
    log_api_request,
    log_channel_fetch_event,
    setup_logging,
)
from subbed.core.schemas import (
    ChannelFeed,
    ChannelRef,
    FeedEntry,
    FeedType,
    PageResult,
    ResolvedChannel,
    SortOrder,
    UserSettings,
    UserSettingsUpdate,
)

__all__ = [
    "Settings",
    "get_settings",
    # Schemas
    "ChannelFeed",
    "ChannelRef",
    "FeedEntry",
    "FeedType",
    "PageResult",
    "ResolvedChannel",
    "SortOrder",
    "UserSettings",
    "UserSettingsUpdate",
    # Logging
    "setup_logging",
    "log_api_request",
    "log_channel_fetch_event",
    # HTTP
    "create_client",
    "fetch_with_retry",
    "fetch_text",
]

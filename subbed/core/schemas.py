"""Pydantic schemas shared by the resolve, fetch, classify and merge pipeline."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from subbed.core.constants import (
    CHANNEL_ID_PATTERN,
    DEFAULT_CONCURRENCY,
    DEFAULT_PER_CHANNEL,
    DEFAULT_PER_PAGE,
    MAX_CACHING_TTL,
    MAX_CONCURRENCY,
    MAX_PER_CHANNEL,
    MAX_PER_PAGE,
)
from subbed.core.exceptions import SettingsValidationError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FeedType(str, Enum):
    """Which entries a feed request keeps."""

    ALL = "all"
    VIDEO = "video"
    SHORT = "short"


class SortOrder(str, Enum):
    """Ordering of the aggregated feed by publication time."""

    NEWEST = "newest"
    OLDEST = "oldest"


class ChannelRef(BaseModel):
    """A stored subscription record."""

    model_config = ConfigDict(populate_by_name=True)

    channel_id: str = Field(..., alias="id", pattern=rf"^{CHANNEL_ID_PATTERN}$")
    title: str | None = None
    url: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted JSON shape."""
        return {
            "id": self.channel_id,
            "title": self.title,
            "url": self.url,
            "created_at": self.created_at.isoformat(),
        }


class ResolvedChannel(BaseModel):
    """Result of resolving user input to a canonical channel ID."""

    model_config = ConfigDict(populate_by_name=True)

    channel_id: str = Field(..., alias="channelId")
    title: str | None = None


class FeedEntry(BaseModel):
    """One video from a channel feed. Built fresh on every fetch."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    link: str
    published_at: datetime | None = Field(default=None, alias="publishedAt")
    thumbnail_url: str | None = Field(default=None, alias="thumbnailUrl")
    description: str = ""
    channel_id: str | None = Field(default=None, alias="channelId")
    channel_title: str | None = Field(default=None, alias="channelTitle")
    is_short: bool = Field(default=False, alias="isShort")
    # Internal only; entries without a feed video ID keep None here
    video_id: str | None = Field(default=None, exclude=True)


class ChannelFeed(BaseModel):
    """Entries accepted from a single channel plus its display title."""

    model_config = ConfigDict(populate_by_name=True)

    channel_id: str = Field(..., alias="channelId")
    channel_title: str | None = Field(default=None, alias="channelTitle")
    items: list[FeedEntry] = Field(default_factory=list)


class UserSettings(BaseModel):
    """Per-user feed preferences."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    per_page: int = Field(default=DEFAULT_PER_PAGE, ge=1, le=MAX_PER_PAGE)
    per_channel: int = Field(default=DEFAULT_PER_CHANNEL, ge=1, le=MAX_PER_CHANNEL)
    show_thumbnails: bool = Field(default=True, alias="showThumbnails")
    show_descriptions: bool = Field(default=True, alias="showDescriptions")
    default_feed_type: FeedType = Field(default=FeedType.ALL, alias="defaultFeedType")
    sort_order: SortOrder = Field(default=SortOrder.NEWEST, alias="sortOrder")
    caching_ttl: int = Field(default=0, ge=0, le=MAX_CACHING_TTL)
    concurrency: int = Field(default=DEFAULT_CONCURRENCY, ge=1, le=MAX_CONCURRENCY)

    def to_record(self) -> dict[str, Any]:
        """Serialize using the external field names."""
        return self.model_dump(mode="json", by_alias=True)


class UserSettingsUpdate(BaseModel):
    """Partial settings update. Unknown keys are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    per_page: int | None = Field(default=None, ge=1, le=MAX_PER_PAGE)
    per_channel: int | None = Field(default=None, ge=1, le=MAX_PER_CHANNEL)
    show_thumbnails: bool | None = Field(default=None, alias="showThumbnails")
    show_descriptions: bool | None = Field(default=None, alias="showDescriptions")
    default_feed_type: FeedType | None = Field(default=None, alias="defaultFeedType")
    sort_order: SortOrder | None = Field(default=None, alias="sortOrder")
    caching_ttl: int | None = Field(default=None, ge=0, le=MAX_CACHING_TTL)
    concurrency: int | None = Field(default=None, ge=1, le=MAX_CONCURRENCY)

    @classmethod
    def parse_partial(cls, data: dict[str, Any]) -> "UserSettingsUpdate":
        """
        Validate a partial settings payload.

        Every recognized field is checked independently; all failures are
        reported together.

        Args:
            data: Raw partial settings (external or attribute names)

        Returns:
            Validated update

        Raises:
            SettingsValidationError: If any recognized field is invalid
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            errors = [
                {
                    "field": ".".join(str(loc) for loc in err["loc"]),
                    "message": err["msg"],
                    "type": err["type"],
                }
                for err in e.errors()
            ]
            raise SettingsValidationError(errors) from e

    def apply_to(self, current: UserSettings) -> UserSettings:
        """Merge the provided fields over ``current``."""
        changes = self.model_dump(exclude_none=True)
        return current.model_copy(update=changes)


class PageResult(BaseModel):
    """One page of the aggregated feed."""

    page: int
    per_page: int
    total: int
    items: list[FeedEntry] = Field(default_factory=list)

"""Channel feed fetcher - fetches, filters and classifies one channel's feed."""

import logging
from typing import Protocol

import httpx

from subbed.core.constants import (
    FEED_ACCEPT_HEADER,
    FEED_PATH,
    MAX_PER_CHANNEL,
    YOUTUBE_BASE_URL,
)
from subbed.core.exceptions import FetchError
from subbed.core.http_session import fetch_with_retry
from subbed.core.metrics import record_channel_fetch
from subbed.core.schemas import ChannelFeed, FeedEntry, FeedType
from subbed.feed.classifier import ClassificationCache, ShortClassifier, is_basic_short
from subbed.feed.parser import RawEntry, parse_feed

logger = logging.getLogger(__name__)


class FeedDocumentCache(Protocol):
    """Cache of raw feed documents keyed by channel ID."""

    async def get_feed(self, channel_id: str) -> str | None: ...

    async def set_feed(self, channel_id: str, document: str, ttl: int) -> bool: ...


def clamp_limit(limit: int | None, default: int = 10) -> int:
    """Clamp a per-channel limit to [1, MAX_PER_CHANNEL]."""
    if limit is None:
        limit = default
    return max(1, min(MAX_PER_CHANNEL, int(limit)))


def matches_query(entry: RawEntry, query: str) -> bool:
    """Case-insensitive substring match over title and description."""
    return not query or query in entry.text.lower()


class ChannelFeedFetcher:
    """Fetch one channel's public feed and apply search and type filters."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        classifier: ShortClassifier,
        *,
        base_url: str = YOUTUBE_BASE_URL,
        attempts: int = 3,
        backoff: float = 0.5,
        timeout: float = 8.0,
        feed_cache: FeedDocumentCache | None = None,
    ) -> None:
        self.client = client
        self.classifier = classifier
        self.base_url = base_url.rstrip("/")
        self.attempts = attempts
        self.backoff = backoff
        self.timeout = timeout
        self.feed_cache = feed_cache

    def feed_url(self, channel_id: str) -> str:
        return f"{self.base_url}{FEED_PATH}?channel_id={channel_id}"

    async def fetch_document(self, channel_id: str, caching_ttl: int = 0) -> str:
        """
        Get the raw feed document, from cache when allowed.

        Args:
            channel_id: Canonical channel ID
            caching_ttl: Seconds to cache the document (0 disables caching)

        Returns:
            Feed XML text

        Raises:
            FetchError: If the feed cannot be fetched after retries
        """
        use_cache = caching_ttl > 0 and self.feed_cache is not None
        if use_cache:
            cached = await self.feed_cache.get_feed(channel_id)
            if cached:
                logger.debug("Feed cache hit for %s", channel_id)
                record_channel_fetch("cached")
                return cached

        try:
            response = await fetch_with_retry(
                self.client,
                self.feed_url(channel_id),
                attempts=self.attempts,
                backoff=self.backoff,
                timeout=self.timeout,
                headers={"Accept": FEED_ACCEPT_HEADER},
            )
        except FetchError as e:
            record_channel_fetch("failed")
            raise FetchError(str(e), channel_id=channel_id) from e

        if not response.is_success:
            record_channel_fetch("failed")
            raise FetchError(
                f"Failed to fetch feed for {channel_id}: HTTP {response.status_code}",
                channel_id=channel_id,
                status_code=response.status_code,
            )

        record_channel_fetch("success")
        document = response.text
        if use_cache:
            await self.feed_cache.set_feed(channel_id, document, caching_ttl)
        return document

    async def fetch_channel_feed(
        self,
        channel_id: str,
        limit: int,
        search_query: str | None = None,
        feed_type: FeedType = FeedType.ALL,
        cache: ClassificationCache | None = None,
        caching_ttl: int = 0,
    ) -> ChannelFeed:
        """
        Fetch one channel's feed with search and type filtering.

        Entries are consumed in feed order; the search filter runs before any
        classification and consumption stops once ``limit`` entries are
        accepted.

        Args:
            channel_id: Canonical channel ID
            limit: Maximum accepted entries (clamped to [1, 50])
            search_query: Optional case-insensitive substring filter
            feed_type: all, video or short
            cache: Request-scoped classification cache (created if None)
            caching_ttl: Seconds to cache the raw document

        Returns:
            ChannelFeed with the channel title and accepted entries

        Raises:
            FetchError: If the feed cannot be fetched or parsed
        """
        limit = clamp_limit(limit)
        feed_type = FeedType(feed_type)
        cache = cache if cache is not None else ClassificationCache()
        query = (search_query or "").strip().lower()

        document = await self.fetch_document(channel_id, caching_ttl)
        try:
            parsed = parse_feed(document)
        except FetchError as e:
            e.channel_id = channel_id
            raise

        items: list[FeedEntry] = []
        for raw in parsed.entries:
            if not matches_query(raw, query):
                continue

            is_short = await self._accept(raw, feed_type, cache)
            if is_short is None:
                continue

            items.append(
                FeedEntry(
                    id=raw.entry_id,
                    title=raw.title,
                    link=raw.link,
                    published_at=raw.published_at,
                    thumbnail_url=raw.thumbnail_url,
                    description=raw.description,
                    channel_id=channel_id,
                    channel_title=parsed.channel_title,
                    is_short=is_short,
                    video_id=raw.video_id,
                )
            )
            if len(items) >= limit:
                break

        logger.debug(
            "Fetched %d entries for %s (type=%s, query=%r)",
            len(items),
            channel_id,
            feed_type.value,
            query,
        )
        return ChannelFeed(channel_id=channel_id, channel_title=parsed.channel_title, items=items)

    async def _accept(
        self, raw: RawEntry, feed_type: FeedType, cache: ClassificationCache
    ) -> bool | None:
        """Return the entry's Short flag if it passes the type filter, else None."""
        basic = is_basic_short(raw.link, raw.text)

        if feed_type is FeedType.ALL:
            return basic

        if feed_type is FeedType.SHORT:
            if basic:
                return True
            detected = await self.classifier.classify(raw.video_id, raw.link, raw.text, cache)
            return True if detected else None

        # Video: obvious Shorts are dropped without a network check
        if basic:
            return None
        detected = await self.classifier.classify(raw.video_id, raw.link, raw.text, cache)
        return None if detected else False

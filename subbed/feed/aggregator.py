"""Feed aggregator - merges every subscribed channel into one paginated feed."""

import asyncio
import logging
from collections.abc import Iterator, Sequence
from datetime import datetime, timezone
from typing import TypeVar

from subbed.channel.extraction import video_id_from_url
from subbed.core.constants import (
    FALLBACK_MIN_CHECKS,
    FALLBACK_PER_PAGE_MULTIPLIER,
    MAX_PER_PAGE,
)
from subbed.core.exceptions import FeedUnavailableError
from subbed.core.logging_config import log_channel_fetch_event
from subbed.core.schemas import (
    ChannelFeed,
    ChannelRef,
    FeedEntry,
    FeedType,
    PageResult,
    SortOrder,
    UserSettings,
)
from subbed.feed.classifier import ClassificationCache, ShortClassifier
from subbed.feed.fetcher import ChannelFeedFetcher, clamp_limit
from subbed.storage.base import SettingsStore, SubscriptionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Entries without a parseable timestamp sort as the epoch
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Split a sequence into consecutive batches of at most ``size`` items."""
    size = max(1, size)
    for start in range(0, len(items), size):
        yield items[start : start + size]


def sort_key(entry: FeedEntry) -> datetime:
    published = entry.published_at or EPOCH
    if published.tzinfo is None:
        published = published.replace(tzinfo=timezone.utc)
    return published


def sort_entries(entries: list[FeedEntry], order: SortOrder) -> list[FeedEntry]:
    """Stable sort by publication time."""
    return sorted(entries, key=sort_key, reverse=order is SortOrder.NEWEST)


def matches_type(entry: FeedEntry, feed_type: FeedType) -> bool:
    if feed_type is FeedType.SHORT:
        return entry.is_short
    if feed_type is FeedType.VIDEO:
        return not entry.is_short
    return True


def entry_video_id(entry: FeedEntry) -> str | None:
    """Video ID of an entry, taken from the feed or its link. Never guessed from ``id``."""
    return entry.video_id or video_id_from_url(entry.link)


def paginate(entries: list[FeedEntry], page: int, per_page: int) -> list[FeedEntry]:
    start = (page - 1) * per_page
    return entries[start : start + per_page]


class FeedAggregator:
    """
    Orchestrate per-channel fetches under a concurrency cap.

    Channels are processed in batches of ``concurrency``: batches run one
    after another, channels inside a batch run concurrently. A failing
    channel contributes zero entries.
    """

    def __init__(
        self,
        fetcher: ChannelFeedFetcher,
        classifier: ShortClassifier,
        subscriptions: SubscriptionStore,
        settings_store: SettingsStore,
    ) -> None:
        self.fetcher = fetcher
        self.classifier = classifier
        self.subscriptions = subscriptions
        self.settings_store = settings_store

    async def _fetch_one(
        self,
        ref: ChannelRef,
        per_channel: int,
        search_query: str,
        feed_type: FeedType,
        cache: ClassificationCache,
        caching_ttl: int,
    ) -> list[FeedEntry] | None:
        """Fetch one channel; returns None when the channel failed."""
        try:
            feed = await self.fetcher.fetch_channel_feed(
                ref.channel_id,
                per_channel,
                search_query=search_query,
                feed_type=feed_type,
                cache=cache,
                caching_ttl=caching_ttl,
            )
        except Exception as e:
            log_channel_fetch_event(
                logger, ref.channel_id, "failed", feed_type=feed_type.value, error=str(e)
            )
            return None

        log_channel_fetch_event(
            logger, ref.channel_id, "completed", items=len(feed.items), feed_type=feed_type.value
        )
        channel_title = feed.channel_title or ref.title
        return [
            entry.model_copy(update={"channel_id": ref.channel_id, "channel_title": channel_title})
            for entry in feed.items
        ]

    async def _fetch_all(
        self,
        subs: list[ChannelRef],
        settings: UserSettings,
        per_channel: int,
        search_query: str,
        feed_type: FeedType,
        cache: ClassificationCache,
    ) -> tuple[list[FeedEntry], int]:
        """Fetch every subscription in batches. Returns (entries, failed channel count)."""
        entries: list[FeedEntry] = []
        failures = 0

        for batch in chunked(subs, settings.concurrency):
            results = await asyncio.gather(
                *(
                    self._fetch_one(
                        ref, per_channel, search_query, feed_type, cache, settings.caching_ttl
                    )
                    for ref in batch
                )
            )
            # gather preserves batch order, so merge order follows the subscription list
            for result in results:
                if result is None:
                    failures += 1
                else:
                    entries.extend(result)

        return entries, failures

    async def _fallback_pass(
        self,
        subs: list[ChannelRef],
        settings: UserSettings,
        per_page: int,
        per_channel: int,
        search_query: str,
        feed_type: FeedType,
    ) -> list[FeedEntry]:
        """
        Re-fetch without a type filter and classify a bounded number of entries.

        Only the first ``max(50, per_page * 3)`` entries in display order are
        classified. The pass starts from an empty classification cache so that
        entries the first pass marked inconclusive are probed again.
        """
        cache = ClassificationCache()
        candidates, _ = await self._fetch_all(
            subs, settings, per_channel, search_query, FeedType.ALL, cache
        )
        max_checks = max(FALLBACK_MIN_CHECKS, per_page * FALLBACK_PER_PAGE_MULTIPLIER)
        candidates = sort_entries(candidates, settings.sort_order)[:max_checks]
        logger.info(
            "Fallback classification pass: %d candidates for type=%s",
            len(candidates),
            feed_type.value,
        )

        kept: list[FeedEntry] = []
        for batch in chunked(candidates, settings.concurrency):
            flags = await asyncio.gather(
                *(
                    self.classifier.classify(
                        entry_video_id(entry),
                        entry.link,
                        f"{entry.title} {entry.description}",
                        cache,
                    )
                    for entry in batch
                )
            )
            for entry, is_short in zip(batch, flags):
                if (feed_type is FeedType.SHORT) == is_short:
                    kept.append(entry.model_copy(update={"is_short": is_short}))
        return kept

    async def load_aggregated_feed(
        self,
        page: int = 1,
        search_query: str = "",
        feed_type: FeedType | str | None = None,
        per_page: int | None = None,
        per_channel: int | None = None,
    ) -> PageResult:
        """
        Build one page of the aggregated feed.

        Args:
            page: 1-based page number
            search_query: Case-insensitive substring filter
            feed_type: all, video or short (defaults to the user's setting)
            per_page: Page size override (defaults to the user's setting)
            per_channel: Per-channel limit override, capped at 50

        Returns:
            PageResult for the requested page

        Raises:
            FeedUnavailableError: If every subscribed channel failed
        """
        settings = await self.settings_store.read()

        page = max(1, page)
        per_page = max(1, min(MAX_PER_PAGE, per_page or settings.per_page))
        per_channel = clamp_limit(per_channel, default=settings.per_channel)
        feed_type = FeedType(feed_type or settings.default_feed_type)
        search_query = (search_query or "").strip()

        subs = await self.subscriptions.list()
        if not subs:
            return PageResult(page=page, per_page=per_page, total=0, items=[])

        # First pass only; the fallback pass builds its own
        cache = ClassificationCache()

        entries, failures = await self._fetch_all(
            subs, settings, per_channel, search_query, feed_type, cache
        )
        if failures == len(subs):
            raise FeedUnavailableError(f"All {failures} subscribed channels failed to fetch")

        entries = [entry for entry in entries if matches_type(entry, feed_type)]

        if feed_type is not FeedType.ALL and not entries:
            entries = await self._fallback_pass(
                subs, settings, per_page, per_channel, search_query, feed_type
            )

        entries = sort_entries(entries, settings.sort_order)
        logger.debug(
            "Aggregated %d entries from %d channels (%d failed)",
            len(entries),
            len(subs),
            failures,
        )
        return PageResult(
            page=page,
            per_page=per_page,
            total=len(entries),
            items=paginate(entries, page, per_page),
        )

    async def load_channel_feed(
        self,
        channel_id: str,
        search_query: str | None = None,
        feed_type: FeedType | str | None = None,
        limit: int | None = None,
    ) -> ChannelFeed:
        """
        Load a single channel's feed.

        Errors propagate since the caller asked for exactly one channel.

        Args:
            channel_id: Canonical channel ID
            search_query: Case-insensitive substring filter
            feed_type: all, video or short (defaults to the user's setting)
            limit: Entry limit (defaults to the per-channel setting)

        Returns:
            ChannelFeed for the channel
        """
        settings = await self.settings_store.read()
        feed_type = FeedType(feed_type or settings.default_feed_type)
        limit = clamp_limit(limit, default=settings.per_channel)

        feed = await self.fetcher.fetch_channel_feed(
            channel_id,
            limit,
            search_query=search_query,
            feed_type=feed_type,
            cache=ClassificationCache(),
            caching_ttl=settings.caching_ttl,
        )
        log_channel_fetch_event(
            logger, channel_id, "completed", items=len(feed.items), feed_type=feed_type.value
        )

        channel_title = feed.channel_title
        if not channel_title:
            ref = await self.subscriptions.get(channel_id)
            channel_title = ref.title if ref else None

        return ChannelFeed(
            channel_id=channel_id,
            channel_title=channel_title,
            items=[
                entry.model_copy(update={"channel_id": channel_id, "channel_title": channel_title})
                for entry in feed.items
            ],
        )

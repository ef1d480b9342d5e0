"""Application service container.

All pipeline components share one HTTP client. The container is built once
per process by the app lifespan (or the CLI) and closed on shutdown.
"""

import logging
from dataclasses import dataclass

import httpx

from subbed.channel.resolver import ChannelResolver
from subbed.core.config import Settings
from subbed.core.http_session import create_client
from subbed.feed.aggregator import FeedAggregator
from subbed.feed.classifier import ShortClassifier
from subbed.feed.fetcher import ChannelFeedFetcher
from subbed.storage.factory import StoreBundle, open_stores
from subbed.storage.redis import FeedCache

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    """Wired pipeline components for one process."""

    settings: Settings
    client: httpx.AsyncClient
    stores: StoreBundle
    resolver: ChannelResolver
    classifier: ShortClassifier
    fetcher: ChannelFeedFetcher
    aggregator: FeedAggregator
    feed_cache: FeedCache | None = None

    @classmethod
    def create(
        cls,
        settings: Settings,
        stores: StoreBundle,
        client: httpx.AsyncClient,
        feed_cache: FeedCache | None = None,
    ) -> "AppServices":
        """Wire the resolver, classifier, fetcher and aggregator.

        Args:
            settings: Application settings
            stores: Opened subscription and settings stores
            client: Shared async HTTP client
            feed_cache: Optional Redis feed document cache

        Returns:
            AppServices instance
        """
        base_url = settings.youtube_base_url
        resolver = ChannelResolver(client, base_url=base_url, timeout=settings.resolver_timeout)
        classifier = ShortClassifier(
            client,
            base_url=base_url,
            attempts=settings.classifier_attempts,
            backoff=settings.classifier_backoff,
            timeout=settings.classifier_timeout,
        )
        fetcher = ChannelFeedFetcher(
            client,
            classifier,
            base_url=base_url,
            attempts=settings.feed_attempts,
            backoff=settings.feed_backoff,
            timeout=settings.feed_timeout,
            feed_cache=feed_cache,
        )
        aggregator = FeedAggregator(fetcher, classifier, stores.subscriptions, stores.settings)
        return cls(
            settings=settings,
            client=client,
            stores=stores,
            resolver=resolver,
            classifier=classifier,
            fetcher=fetcher,
            aggregator=aggregator,
            feed_cache=feed_cache,
        )

    async def close(self) -> None:
        """Release the HTTP client, the feed cache and the storage backend."""
        await self.client.aclose()
        if self.feed_cache is not None:
            await self.feed_cache.disconnect()
        await self.stores.close()


async def build_services(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AppServices:
    """Open storage and the optional feed cache, then wire the pipeline.

    Args:
        settings: Application settings
        transport: Optional HTTP transport override

    Returns:
        Ready-to-use AppServices

    Raises:
        StorageError: If the configured storage backend cannot be opened
    """
    stores = await open_stores(settings)

    feed_cache = None
    if settings.redis_enabled:
        feed_cache = FeedCache.from_settings(settings)
        if not await feed_cache.connect():
            logger.warning("Redis unavailable, feed caching disabled")

    client = create_client(settings, transport=transport)
    return AppServices.create(settings, stores, client, feed_cache=feed_cache)

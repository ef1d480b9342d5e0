"""Feed endpoints.

This module provides endpoints for:
- The aggregated, paginated feed across all subscriptions
- A single channel's feed
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from subbed.api.dependencies import get_aggregator, get_resolver
from subbed.channel.extraction import is_channel_id
from subbed.channel.resolver import ChannelResolver
from subbed.core.constants import MAX_PER_CHANNEL, MAX_PER_PAGE
from subbed.core.schemas import ChannelFeed, FeedType, PageResult
from subbed.feed.aggregator import FeedAggregator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["feed"])


@router.get(
    "/feed",
    response_model=PageResult,
    summary="Aggregated feed",
    description="""
    Merge the recent uploads of every subscribed channel into one feed.

    Defaults for `per_page`, `per_channel` and `type` come from the stored
    settings. Channels that fail to fetch are skipped; if every channel
    fails the request returns 502.
    """,
    operation_id="get_feed",
    responses={
        200: {"description": "One page of the aggregated feed"},
        502: {"description": "No subscribed channel could be fetched"},
    },
)
async def get_feed(
    page: int = Query(default=1, ge=1, description="1-based page number"),
    per_page: int | None = Query(default=None, ge=1, le=MAX_PER_PAGE),
    per_channel: int | None = Query(default=None, ge=1, le=MAX_PER_CHANNEL),
    q: str = Query(default="", description="Case-insensitive search over title and description"),
    feed_type: FeedType | None = Query(default=None, alias="type"),
    aggregator: FeedAggregator = Depends(get_aggregator),
) -> PageResult:
    """Return one page of the aggregated feed."""
    return await aggregator.load_aggregated_feed(
        page=page,
        search_query=q,
        feed_type=feed_type,
        per_page=per_page,
        per_channel=per_channel,
    )


@router.get(
    "/channel-feed",
    response_model=ChannelFeed,
    summary="Single channel feed",
    description="""
    Fetch one channel's recent uploads.

    `id` may be a canonical channel ID or anything the resolver accepts
    (handle, channel URL, video link).
    """,
    operation_id="get_channel_feed",
    responses={
        200: {"description": "The channel's feed"},
        400: {"description": "Missing id"},
        404: {"description": "Channel could not be resolved"},
        502: {"description": "Upstream feed fetch failed"},
    },
)
async def get_channel_feed(
    channel: str | None = Query(default=None, alias="id", description="Channel ID or URL"),
    limit: int | None = Query(default=None, ge=1, le=MAX_PER_CHANNEL),
    q: str | None = Query(default=None),
    feed_type: FeedType | None = Query(default=None, alias="type"),
    aggregator: FeedAggregator = Depends(get_aggregator),
    resolver: ChannelResolver = Depends(get_resolver),
) -> ChannelFeed:
    """Return a single channel's feed.

    Args:
        channel: Canonical ID or resolvable channel input
        limit: Maximum number of entries
        q: Search filter
        feed_type: all, video or short
        aggregator: Feed aggregator dependency
        resolver: Channel resolver dependency

    Returns:
        ChannelFeed with annotated entries
    """
    channel = (channel or "").strip()
    if not channel:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="id is required",
        )

    if not is_channel_id(channel):
        resolved = await resolver.resolve(channel)
        logger.debug("Resolved %r to %s", channel, resolved.channel_id)
        channel = resolved.channel_id

    return await aggregator.load_channel_feed(
        channel,
        search_query=q,
        feed_type=feed_type,
        limit=limit,
    )

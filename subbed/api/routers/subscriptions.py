"""Subscription management endpoints.

This module provides endpoints for:
- Listing subscribed channels
- Adding a channel by ID or by resolvable input
- Removing one channel or clearing all of them
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from subbed.api.dependencies import get_resolver, get_subscription_store
from subbed.api.models.requests import OkResponse, SubscriptionCreateRequest, SubscriptionResponse
from subbed.channel.extraction import is_channel_id
from subbed.channel.resolver import ChannelResolver
from subbed.core.schemas import ChannelRef
from subbed.storage.base import SubscriptionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.get(
    "",
    response_model=list[ChannelRef],
    summary="List subscriptions",
    description="List subscribed channels, newest first.",
    operation_id="list_subscriptions",
)
async def list_subscriptions(
    store: SubscriptionStore = Depends(get_subscription_store),
) -> list[ChannelRef]:
    return await store.list()


@router.post(
    "",
    response_model=SubscriptionResponse,
    summary="Add subscription",
    description="""
    Subscribe to a channel.

    Pass `id` with a canonical channel ID, or `url` with anything the
    resolver accepts. The title is looked up when omitted.
    """,
    operation_id="add_subscription",
    responses={
        200: {"description": "Subscription stored"},
        400: {"description": "Neither id nor url given, or id is not a channel ID"},
        404: {"description": "Channel could not be resolved"},
    },
)
async def add_subscription(
    request: SubscriptionCreateRequest,
    store: SubscriptionStore = Depends(get_subscription_store),
    resolver: ChannelResolver = Depends(get_resolver),
) -> SubscriptionResponse:
    """Add a subscription.

    Args:
        request: Subscription payload
        store: Subscription store dependency
        resolver: Channel resolver dependency

    Returns:
        SubscriptionResponse with the stored record
    """
    channel_id = (request.id or "").strip()
    url = (request.url or "").strip()
    title = (request.title or "").strip() or None

    if channel_id:
        if not is_channel_id(channel_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid channel ID: {channel_id}",
            )
    elif url:
        resolved = await resolver.resolve(url)
        channel_id = resolved.channel_id
        title = title or resolved.title
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="id or url is required",
        )

    if not title:
        title = await resolver.resolve_title(channel_id)

    ref = ChannelRef(
        channel_id=channel_id,
        title=title,
        url=url or f"{resolver.base_url}/channel/{channel_id}",
    )
    stored = await store.add(ref)
    logger.info("Subscribed to %s (%s)", channel_id, title)
    return SubscriptionResponse(subscription=stored)


@router.delete(
    "",
    response_model=OkResponse,
    summary="Remove subscriptions",
    description="Remove the channel given by `id`, or every subscription when `id` is omitted.",
    operation_id="remove_subscriptions",
)
async def remove_subscriptions(
    channel_id: str | None = Query(default=None, alias="id"),
    store: SubscriptionStore = Depends(get_subscription_store),
) -> OkResponse:
    if channel_id:
        removed = await store.remove(channel_id)
        logger.info("Unsubscribed from %s (removed=%s)", channel_id, removed)
    else:
        await store.clear()
        logger.info("Cleared all subscriptions")
    return OkResponse()

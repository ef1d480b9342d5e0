"""Channel resolution endpoint."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from subbed.api.dependencies import get_resolver
from subbed.channel.resolver import ChannelResolver
from subbed.core.schemas import ResolvedChannel

router = APIRouter(tags=["resolve"])


@router.get(
    "/resolve",
    response_model=ResolvedChannel,
    summary="Resolve channel input",
    description="""
    Resolve a handle (`@name`), channel URL, custom URL, video link or
    channel ID to `{channelId, title}`.
    """,
    operation_id="resolve_channel",
    responses={
        200: {
            "description": "Resolved channel",
            "content": {
                "application/json": {
                    "example": {"channelId": "UC_x5XG1OV2P6uZZ5FSM9Ttw", "title": "Google for Developers"}
                }
            },
        },
        400: {"description": "Missing input"},
        404: {"description": "Channel could not be resolved"},
    },
)
async def resolve_channel(
    url: str | None = Query(default=None, description="Channel input to resolve"),
    q: str | None = Query(default=None, description="Alias for url"),
    resolver: ChannelResolver = Depends(get_resolver),
) -> ResolvedChannel:
    raw = (url or q or "").strip()
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="url is required",
        )
    return await resolver.resolve(raw)

"""Channel resolution for YouTube channels."""

from .extraction import (
    ExtractionResult,
    Found,
    NotFound,
    channel_id_from_url,
    extract_channel_id,
    extract_title,
    is_channel_id,
    video_id_from_url,
)
from .resolver import ChannelResolver, build_candidate_url

__all__ = [
    # Resolver
    "ChannelResolver",
    "build_candidate_url",
    # Extraction
    "ExtractionResult",
    "Found",
    "NotFound",
    "channel_id_from_url",
    "extract_channel_id",
    "extract_title",
    "is_channel_id",
    "video_id_from_url",
]

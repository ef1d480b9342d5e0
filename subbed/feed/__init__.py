"""Feed fetching, Shorts classification and aggregation."""

from .aggregator import FeedAggregator
from .classifier import (
    ClassificationCache,
    ShortClassifier,
    extract_length_seconds,
    has_short_markers,
    is_basic_short,
)
from .fetcher import ChannelFeedFetcher
from .parser import ParsedFeed, RawEntry, parse_feed, parse_published

__all__ = [
    # Aggregator
    "FeedAggregator",
    # Fetcher
    "ChannelFeedFetcher",
    # Classifier
    "ClassificationCache",
    "ShortClassifier",
    "extract_length_seconds",
    "has_short_markers",
    "is_basic_short",
    # Parser
    "ParsedFeed",
    "RawEntry",
    "parse_feed",
    "parse_published",
]

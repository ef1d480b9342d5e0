"""Application constants and metadata.

This module centralizes all application-wide constants for:
- Application metadata
- API versioning
- YouTube upstream URLs and identifier patterns
- User settings defaults and bounds
- Feed aggregation limits
"""

import re
from datetime import datetime, timezone

# Application start time (for uptime calculation)
START_TIME = datetime.now(timezone.utc)

# =============================================================================
# Application Metadata
# =============================================================================

APP_NAME = "Subbed Feed API"
APP_DESCRIPTION = """
Aggregated YouTube subscription feed built from public channel feeds.

## Features

- **Channel Resolution**: Turn handles, channel URLs and video links into channel IDs
- **Aggregated Feed**: Merge every subscribed channel into one sorted, paginated feed
- **Shorts Detection**: Separate Shorts from regular videos with layered heuristics
- **Subscriptions & Settings**: Manage subscribed channels and feed preferences
"""
APP_VERSION = "0.3.0"

# =============================================================================
# API Configuration
# =============================================================================

API_V1_PREFIX = "/api/v1"

API_TAGS = [
    {
        "name": "feed",
        "description": "Aggregated and single-channel feed endpoints.",
    },
    {
        "name": "resolve",
        "description": "Resolve arbitrary channel input to a canonical channel ID.",
    },
    {
        "name": "subscriptions",
        "description": "Manage subscribed channels.",
    },
    {
        "name": "settings",
        "description": "Read and update feed preferences.",
    },
    {
        "name": "health",
        "description": "Health check and monitoring endpoints.",
    },
]

# =============================================================================
# YouTube Upstream
# =============================================================================

YOUTUBE_BASE_URL = "https://www.youtube.com"
FEED_PATH = "/feeds/videos.xml"
OEMBED_PATH = "/oembed"

CHANNEL_ID_PATTERN = r"UC[A-Za-z0-9_-]{22}"
CHANNEL_ID_RE = re.compile(rf"^{CHANNEL_ID_PATTERN}$")
VIDEO_ID_PATTERN = r"[A-Za-z0-9_-]{11}"

TITLE_SUFFIX = " - YouTube"

FEED_ACCEPT_HEADER = "application/atom+xml, application/xml;q=0.9, */*;q=0.8"

# =============================================================================
# User Settings Defaults and Bounds
# =============================================================================

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100
DEFAULT_PER_CHANNEL = 10
MAX_PER_CHANNEL = 50
DEFAULT_CONCURRENCY = 6
MAX_CONCURRENCY = 20
MAX_CACHING_TTL = 86400

# =============================================================================
# Feed Aggregation
# =============================================================================

# Fallback reclassification pass checks at most max(MIN, per_page * MULTIPLIER)
FALLBACK_MIN_CHECKS = 50
FALLBACK_PER_PAGE_MULTIPLIER = 3

# Duration proxy for Shorts detection (seconds)
SHORT_MAX_SECONDS = 60

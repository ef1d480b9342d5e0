"""Pure extraction strategies for YouTube HTML and embedded JSON.

Each strategy takes a document and returns ``Found`` or ``NotFound``; the
composed extractors try strategies in order and stop at the first hit.
"""

import html
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from urllib.parse import parse_qs, urlparse

from subbed.core.constants import CHANNEL_ID_PATTERN, CHANNEL_ID_RE, TITLE_SUFFIX, VIDEO_ID_PATTERN


@dataclass(frozen=True)
class Found:
    """A strategy produced a value."""

    value: str


@dataclass(frozen=True)
class NotFound:
    """A strategy produced nothing."""

    strategy: str | None = None


ExtractionResult = Found | NotFound
Strategy = Callable[[str], ExtractionResult]

NOT_FOUND = NotFound()

_CANONICAL_LINK_RE = re.compile(
    r"""<link[^>]*rel=["']canonical["'][^>]*href=["']([^"']+)["']""", re.IGNORECASE
)
_CHANNEL_PATH_RE = re.compile(rf"/channel/({CHANNEL_ID_PATTERN})")
_META_CHANNEL_ID_RE = re.compile(
    rf"""<meta[^>]*itemprop=["']channelId["'][^>]*content=["']({CHANNEL_ID_PATTERN})["'][^>]*>""",
    re.IGNORECASE,
)
_OG_TITLE_RE = re.compile(
    r"""<meta[^>]*property=["']og:title["'][^>]*content=["']([^"']+)["'][^>]*>""", re.IGNORECASE
)
_TITLE_TAG_RE = re.compile(r"<title>([^<]+)</title>", re.IGNORECASE)
_CHANNEL_METADATA_TITLE_RE = re.compile(
    r'"channelMetadataRenderer"\s*:\s*\{[^{}]*?"title"\s*:\s*"((?:[^"\\]|\\.)*)"'
)
_SHORTS_PATH_RE = re.compile(rf"/shorts/({VIDEO_ID_PATTERN})")
_YOUTU_BE_RE = re.compile(rf"youtu\.be/({VIDEO_ID_PATTERN})")
_VIDEO_ID_RE = re.compile(rf"^{VIDEO_ID_PATTERN}$")

# JSON keys that carry a channel ID, in priority order
CHANNEL_ID_JSON_KEYS = ("channelId", "browseId", "ownerChannelId", "externalChannelId")
# JSON keys that carry a display title, in priority order
TITLE_JSON_KEYS = ("ownerChannelName", "author")


def _json_string_re(key: str, value_pattern: str = r'((?:[^"\\]|\\.)*)') -> re.Pattern[str]:
    return re.compile(rf'"{key}"\s*:\s*"{value_pattern}"')


def _unescape_json_string(value: str) -> str:
    # Unicode escapes first, then quote and slash escapes
    value = re.sub(r"\\u([0-9a-fA-F]{4})", lambda m: chr(int(m.group(1), 16)), value)
    return value.replace('\\"', '"').replace("\\/", "/").replace("\\\\", "\\")


def _clean_title(value: str) -> str:
    title = html.unescape(value).strip()
    if title.endswith(TITLE_SUFFIX):
        title = title[: -len(TITLE_SUFFIX)].strip()
    return title


def is_channel_id(text: str | None) -> bool:
    """Check whether text is a canonical channel ID."""
    return bool(text) and CHANNEL_ID_RE.match(text) is not None


def channel_id_from_url(url: str | None) -> str | None:
    """Return the channel ID encoded in a ``/channel/UC...`` URL, if any."""
    if not url:
        return None
    match = _CHANNEL_PATH_RE.search(url)
    return match.group(1) if match else None


def video_id_from_url(url: str | None) -> str | None:
    """
    Extract a video ID from a watch, short-link or Shorts URL.

    Args:
        url: Any URL or URL-like text

    Returns:
        The 11-character video ID or None
    """
    if not url:
        return None

    parsed = urlparse(url)
    values = parse_qs(parsed.query).get("v")
    if values and _VIDEO_ID_RE.match(values[0]):
        return values[0]

    for pattern in (_YOUTU_BE_RE, _SHORTS_PATH_RE):
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


# Channel ID strategies


def channel_id_from_canonical_link(document: str) -> ExtractionResult:
    """``<link rel="canonical">`` pointing at a channel URL."""
    match = _CANONICAL_LINK_RE.search(document)
    if match:
        channel_id = channel_id_from_url(match.group(1))
        if channel_id:
            return Found(channel_id)
    return NotFound("canonical_link")


def channel_id_from_channel_path(document: str) -> ExtractionResult:
    """Any ``/channel/UC...`` path in the document."""
    channel_id = channel_id_from_url(document)
    return Found(channel_id) if channel_id else NotFound("channel_path")


def channel_id_from_json(document: str) -> ExtractionResult:
    """Embedded JSON fields carrying a channel ID, in key priority order."""
    for key in CHANNEL_ID_JSON_KEYS:
        match = _json_string_re(key, f"({CHANNEL_ID_PATTERN})").search(document)
        if match:
            return Found(match.group(1))
    return NotFound("json_fields")


def channel_id_from_meta_itemprop(document: str) -> ExtractionResult:
    """``<meta itemprop="channelId" content="UC...">``."""
    match = _META_CHANNEL_ID_RE.search(document)
    return Found(match.group(1)) if match else NotFound("meta_itemprop")


CHANNEL_ID_STRATEGIES: tuple[Strategy, ...] = (
    channel_id_from_canonical_link,
    channel_id_from_channel_path,
    channel_id_from_json,
    channel_id_from_meta_itemprop,
)


# Title strategies


def title_from_og_meta(document: str) -> ExtractionResult:
    """Open Graph ``og:title`` meta tag."""
    match = _OG_TITLE_RE.search(document)
    if match:
        title = _clean_title(match.group(1))
        if title:
            return Found(title)
    return NotFound("og_title")


def title_from_title_tag(document: str) -> ExtractionResult:
    """HTML ``<title>`` with the site suffix stripped."""
    match = _TITLE_TAG_RE.search(document)
    if match:
        title = _clean_title(match.group(1))
        if title and title != TITLE_SUFFIX.strip(" -"):
            return Found(title)
    return NotFound("title_tag")


def title_from_json(document: str) -> ExtractionResult:
    """JSON title fields: channel metadata renderer, then owner name, then author."""
    match = _CHANNEL_METADATA_TITLE_RE.search(document)
    if match:
        title = _clean_title(_unescape_json_string(match.group(1)))
        if title:
            return Found(title)

    for key in TITLE_JSON_KEYS:
        match = _json_string_re(key).search(document)
        if match:
            title = _clean_title(_unescape_json_string(match.group(1)))
            if title:
                return Found(title)
    return NotFound("json_title")


TITLE_STRATEGIES: tuple[Strategy, ...] = (
    title_from_og_meta,
    title_from_title_tag,
    title_from_json,
)


def run_waterfall(document: str | None, strategies: Sequence[Strategy]) -> ExtractionResult:
    """
    Apply strategies in order and return the first ``Found``.

    Args:
        document: Document to scan (None yields NotFound)
        strategies: Ordered extraction strategies

    Returns:
        First Found result, or NotFound when every strategy misses
    """
    if not document:
        return NOT_FOUND
    for strategy in strategies:
        result = strategy(document)
        if isinstance(result, Found):
            return result
    return NOT_FOUND


def extract_channel_id(document: str | None) -> str | None:
    """Extract a canonical channel ID from an HTML page."""
    result = run_waterfall(document, CHANNEL_ID_STRATEGIES)
    return result.value if isinstance(result, Found) else None


def extract_title(document: str | None) -> str | None:
    """Extract a human-readable channel title from an HTML page."""
    result = run_waterfall(document, TITLE_STRATEGIES)
    return result.value if isinstance(result, Found) else None

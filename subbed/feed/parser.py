"""Parser for YouTube channel Atom feeds."""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime, timezone

from subbed.core.exceptions import FeedParseError

logger = logging.getLogger(__name__)

# YouTube uses Atom with its own and Media RSS extensions
NAMESPACES = {
    "atom": "http://www.w3.org/2005/Atom",
    "yt": "http://www.youtube.com/xml/schemas/2015",
    "media": "http://search.yahoo.com/mrss/",
}


@dataclass
class RawEntry:
    """One ``<entry>`` as it appears in the feed."""

    video_id: str | None
    title: str
    link: str
    published_at: datetime | None = None
    thumbnail_url: str | None = None
    description: str = ""

    @property
    def entry_id(self) -> str:
        return self.video_id or self.title

    @property
    def text(self) -> str:
        """Title and description blurb used by search and classification."""
        return f"{self.title} {self.description}"


@dataclass
class ParsedFeed:
    """A parsed channel feed document."""

    channel_title: str | None
    channel_id: str | None = None
    entries: list[RawEntry] = field(default_factory=list)


def parse_published(text: str | None) -> datetime | None:
    """
    Parse an ISO 8601 feed timestamp.

    Args:
        text: Timestamp text such as ``2024-01-05T10:00:00+00:00``

    Returns:
        Timezone-aware datetime, or None when missing or unparseable
    """
    if not text:
        return None
    try:
        published = datetime.fromisoformat(text.strip().replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable published timestamp: %r", text)
        return None
    if published.tzinfo is None:
        published = published.replace(tzinfo=timezone.utc)
    return published


def _text(elem: ET.Element | None) -> str | None:
    if elem is None or elem.text is None:
        return None
    return elem.text.strip()


def _entry_link(entry: ET.Element, video_id: str | None) -> str:
    for link in entry.findall("atom:link", NAMESPACES):
        rel = link.get("rel", "alternate")
        href = link.get("href")
        if rel == "alternate" and href:
            return href
    if video_id:
        return f"https://www.youtube.com/watch?v={video_id}"
    return ""


def _parse_entry(entry: ET.Element) -> RawEntry:
    video_id = _text(entry.find("yt:videoId", NAMESPACES))
    title = _text(entry.find("atom:title", NAMESPACES)) or ""

    # Description and thumbnail sit in <media:group>
    group = entry.find("media:group", NAMESPACES)
    description = ""
    thumbnail_url = None
    if group is not None:
        description = _text(group.find("media:description", NAMESPACES)) or ""
        thumb_elem = group.find("media:thumbnail", NAMESPACES)
        if thumb_elem is not None:
            thumbnail_url = thumb_elem.get("url")

    return RawEntry(
        video_id=video_id,
        title=title,
        link=_entry_link(entry, video_id),
        published_at=parse_published(_text(entry.find("atom:published", NAMESPACES))),
        thumbnail_url=thumbnail_url,
        description=description,
    )


def parse_feed(document: str | bytes) -> ParsedFeed:
    """
    Parse a channel feed document.

    Args:
        document: Atom XML from ``/feeds/videos.xml``

    Returns:
        ParsedFeed with the channel title and entries in document order

    Raises:
        FeedParseError: If the document is not well-formed XML
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError as e:
        raise FeedParseError(f"Malformed feed document: {e}") from e

    return ParsedFeed(
        channel_title=_text(root.find("atom:title", NAMESPACES)),
        channel_id=_text(root.find("yt:channelId", NAMESPACES)),
        entries=[_parse_entry(entry) for entry in root.findall("atom:entry", NAMESPACES)],
    )

"""Channel resolver - converts handles, URLs and video links to channel IDs."""

import json
import logging
import re
from collections.abc import Awaitable, Callable
from urllib.parse import quote

import httpx

from subbed.channel.extraction import (
    Found,
    NotFound,
    channel_id_from_url,
    extract_channel_id,
    extract_title,
    is_channel_id,
    video_id_from_url,
)
from subbed.core.constants import OEMBED_PATH, YOUTUBE_BASE_URL
from subbed.core.exceptions import ResolutionError
from subbed.core.http_session import fetch_text
from subbed.core.schemas import ResolvedChannel

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")
_BARE_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_SITE_RELATIVE_PREFIXES = ("@", "user/", "c/")


def build_candidate_url(text: str, base_url: str = YOUTUBE_BASE_URL) -> str:
    """
    Turn user input into an absolute URL.

    Args:
        text: Trimmed user input
        base_url: YouTube base URL for handles and bare tokens

    Returns:
        Absolute candidate URL
    """
    if _SCHEME_RE.match(text):
        return text
    if text.startswith(_SITE_RELATIVE_PREFIXES) or _BARE_TOKEN_RE.match(text):
        return f"{base_url.rstrip('/')}/{text}"
    return f"https://{text}"


class ChannelResolver:
    """
    Resolve arbitrary channel input with an ordered waterfall of lookups.

    Strategies run in strict order and stop at the first hit. Each network
    call has its own timeout and a failed call only means that strategy found
    nothing.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        base_url: str = YOUTUBE_BASE_URL,
        timeout: float = 6.0,
    ) -> None:
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def _get_text(self, url: str) -> str | None:
        return await fetch_text(self.client, url, timeout=self.timeout)

    def _absolute(self, url: str) -> str:
        if url.startswith("http"):
            return url
        return self.base_url + (url if url.startswith("/") else "/" + url)

    async def resolve(self, raw: str) -> ResolvedChannel:
        """
        Resolve user input to a canonical channel ID and display title.

        Args:
            raw: Handle, channel URL, video link or channel ID

        Returns:
            ResolvedChannel with the canonical ID; title may be None

        Raises:
            ResolutionError: If the input is blank or every strategy fails
        """
        text = (raw or "").strip()
        if not text:
            raise ResolutionError("missing channel input")

        if is_channel_id(text):
            return ResolvedChannel(channel_id=text, title=None)

        candidate = build_candidate_url(text, self.base_url)
        logger.debug("Resolving %r via %s", text, candidate)

        author_name: str | None = None

        async def from_candidate_path() -> Found | NotFound:
            channel_id = channel_id_from_url(candidate)
            return Found(channel_id) if channel_id else NotFound("candidate_path")

        async def from_oembed() -> Found | NotFound:
            nonlocal author_name
            result, author_name = await self._resolve_via_oembed(candidate)
            return result

        async def from_video_page() -> Found | NotFound:
            return await self._resolve_via_video_page(candidate)

        async def from_direct_fetch() -> Found | NotFound:
            channel_id = extract_channel_id(await self._get_text(candidate))
            return Found(channel_id) if channel_id else NotFound("direct_fetch")

        strategies: list[Callable[[], Awaitable[Found | NotFound]]] = [
            from_candidate_path,
            from_oembed,
            from_video_page,
            from_direct_fetch,
        ]

        channel_id: str | None = None
        for strategy in strategies:
            result = await strategy()
            if isinstance(result, Found):
                channel_id = result.value
                logger.debug("Resolved %r -> %s (%s)", text, channel_id, strategy.__name__)
                break

        if channel_id is None:
            logger.info("Could not resolve channel input %r", text)
            raise ResolutionError("could not resolve channel id")

        title = author_name or await self.resolve_title(channel_id)
        return ResolvedChannel(channel_id=channel_id, title=title)

    async def _resolve_via_oembed(self, candidate: str) -> tuple[Found | NotFound, str | None]:
        """Query oEmbed for the author URL; also returns the author name."""
        oembed_url = f"{self.base_url}{OEMBED_PATH}?url={quote(candidate, safe='')}&format=json"
        body = await self._get_text(oembed_url)
        if not body:
            return NotFound("oembed"), None

        try:
            data = json.loads(body)
        except json.JSONDecodeError:
            logger.debug("oEmbed response for %s is not JSON", candidate)
            return NotFound("oembed"), None
        if not isinstance(data, dict):
            return NotFound("oembed"), None

        author_name = data.get("author_name")
        if not isinstance(author_name, str) or not author_name.strip():
            author_name = None
        else:
            author_name = author_name.strip()

        author_url = data.get("author_url")
        if not isinstance(author_url, str) or not author_url:
            return NotFound("oembed"), author_name

        channel_id = channel_id_from_url(author_url)
        if channel_id:
            return Found(channel_id), author_name

        channel_id = extract_channel_id(await self._get_text(self._absolute(author_url)))
        if channel_id:
            return Found(channel_id), author_name
        return NotFound("oembed_author_page"), author_name

    async def _resolve_via_video_page(self, candidate: str) -> Found | NotFound:
        video_id = video_id_from_url(candidate)
        if not video_id:
            return NotFound("video_page")

        page = await self._get_text(f"{self.base_url}/watch?v={video_id}")
        channel_id = extract_channel_id(page)
        return Found(channel_id) if channel_id else NotFound("video_page")

    async def resolve_title(self, channel_id: str) -> str | None:
        """
        Look up a channel's display title from its channel page.

        Args:
            channel_id: Canonical channel ID

        Returns:
            Title, or None when the page is unavailable or has no title
        """
        page = await self._get_text(f"{self.base_url}/channel/{channel_id}")
        return extract_title(page)

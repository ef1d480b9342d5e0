"""Short-form video classification with layered heuristics.

Checks run cheapest first and stop at the first positive:

1. Basic heuristic on the link and text (no network)
2. No video ID means not a Short
3. Probe of the ``/shorts/<id>`` page
4. Probe of the ``/watch?v=<id>`` page
5. Otherwise not a Short

False negatives are acceptable; the classifier never raises.
"""

import logging
import re

import httpx

from subbed.core.constants import SHORT_MAX_SECONDS, YOUTUBE_BASE_URL
from subbed.core.http_session import fetch_with_retry
from subbed.core.metrics import record_classification

logger = logging.getLogger(__name__)

_SHORTS_WORD_RE = re.compile(r"#shorts\b|\bshorts\b", re.IGNORECASE)
_SHORT_MARKER_RES = (
    re.compile(r"""<link[^>]*rel=["']canonical["'][^>]*href=["'][^"']*/shorts/""", re.IGNORECASE),
    re.compile(r"""property=["']og:url["'][^>]*content=["'][^"']*/shorts/""", re.IGNORECASE),
    re.compile(r'"isShorts"\s*:\s*true', re.IGNORECASE),
    re.compile(r'"url"\s*:\s*"https:(?:\\/|/){2}www\.youtube\.com(?:\\/|/)shorts(?:\\/|/)', re.IGNORECASE),
)
_LENGTH_SECONDS_RE = re.compile(r'"lengthSeconds"\s*:\s*"?(\d+)"?', re.IGNORECASE)


class ClassificationCache:
    """
    Request-scoped memo of classification results.

    Created by the caller for one aggregation or channel-fetch request and
    dropped when the request ends.
    """

    def __init__(self) -> None:
        self._results: dict[str, bool] = {}

    @staticmethod
    def key(video_id: str | None, link: str | None, text: str) -> str:
        return video_id or link or text

    def get(self, key: str) -> bool | None:
        return self._results.get(key)

    def set(self, key: str, value: bool) -> None:
        self._results[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._results

    def __len__(self) -> int:
        return len(self._results)


def is_basic_short(link: str | None, text: str | None) -> bool:
    """
    Zero-cost Shorts check using only the link and text.

    Args:
        link: Entry link
        text: Title and description blurb

    Returns:
        True if the link is a Shorts URL or the text carries a shorts token
    """
    if link and "/shorts/" in link:
        return True
    return bool(text) and _SHORTS_WORD_RE.search(text) is not None


def has_short_markers(body: str) -> bool:
    """Check a page body for canonical/og:url Shorts links or JSON Shorts flags."""
    return any(pattern.search(body) for pattern in _SHORT_MARKER_RES)


def extract_length_seconds(body: str) -> int | None:
    """Extract the ``lengthSeconds`` duration from embedded JSON."""
    match = _LENGTH_SECONDS_RE.search(body)
    return int(match.group(1)) if match else None


class ShortClassifier:
    """Decide whether a video is a Short, using network probes only when needed."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        base_url: str = YOUTUBE_BASE_URL,
        attempts: int = 2,
        backoff: float = 0.3,
        timeout: float = 5.0,
        max_short_seconds: int = SHORT_MAX_SECONDS,
    ) -> None:
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.attempts = attempts
        self.backoff = backoff
        self.timeout = timeout
        self.max_short_seconds = max_short_seconds

    def _body_says_short(self, body: str) -> bool:
        if has_short_markers(body):
            return True
        seconds = extract_length_seconds(body)
        return seconds is not None and seconds <= self.max_short_seconds

    async def _get(self, url: str) -> httpx.Response | None:
        response = await fetch_with_retry(
            self.client,
            url,
            attempts=self.attempts,
            backoff=self.backoff,
            timeout=self.timeout,
        )
        return response if response.is_success else None

    async def probe_shorts_page(self, video_id: str) -> bool:
        """Primary check against the dedicated Shorts URL."""
        response = await self._get(f"{self.base_url}/shorts/{video_id}")
        if response is None:
            return False
        # Non-Shorts videos redirect away from /shorts/
        if "/shorts/" in str(response.url):
            return True
        return self._body_says_short(response.text)

    async def probe_watch_page(self, video_id: str) -> bool:
        """Fallback check against the canonical watch page."""
        response = await self._get(f"{self.base_url}/watch?v={video_id}")
        if response is None:
            return False
        return self._body_says_short(response.text)

    async def classify(
        self,
        video_id: str | None,
        link: str | None,
        text: str,
        cache: ClassificationCache,
    ) -> bool:
        """
        Classify one video, memoized in the caller's cache.

        Args:
            video_id: YouTube video ID, if known
            link: Entry link
            text: Title and description blurb
            cache: Request-scoped classification cache

        Returns:
            True if the video is judged a Short
        """
        key = ClassificationCache.key(video_id, link, text)
        cached = cache.get(key)
        if cached is not None:
            return cached

        result, method = await self._classify_uncached(video_id, link, text)
        cache.set(key, result)
        record_classification(method, result)
        return result

    async def _classify_uncached(
        self, video_id: str | None, link: str | None, text: str
    ) -> tuple[bool, str]:
        if is_basic_short(link, text):
            return True, "basic"

        if not video_id:
            return False, "no_video_id"

        for method, probe in (
            ("shorts_probe", self.probe_shorts_page),
            ("watch_probe", self.probe_watch_page),
        ):
            try:
                if await probe(video_id):
                    return True, method
            except Exception as e:
                # Inconclusive, fall through to the next check
                logger.debug("%s for %s failed: %s", method, video_id, e)

        return False, "fallthrough"

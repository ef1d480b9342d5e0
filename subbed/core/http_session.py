"""HTTP client management and retrying fetch helpers for upstream requests."""

import asyncio
import logging
from typing import Any

import httpx

from subbed.core.config import Settings, get_settings
from subbed.core.exceptions import FetchError

logger = logging.getLogger(__name__)


def default_headers(user_agent: str) -> dict[str, str]:
    """Build default request headers for upstream YouTube requests."""
    return {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }


def create_client(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    **kwargs: Any,
) -> httpx.AsyncClient:
    """
    Create an async HTTP client shared by the resolver, classifier and fetcher.

    The client is reused for the lifetime of the application to benefit from
    connection pooling. Each request still carries its own timeout.

    Args:
        settings: Application settings (defaults to cached settings)
        transport: Optional transport override (used by tests)
        **kwargs: Additional arguments passed to httpx.AsyncClient

    Returns:
        Configured httpx.AsyncClient instance
    """
    settings = settings or get_settings()
    return httpx.AsyncClient(
        headers=default_headers(settings.user_agent),
        follow_redirects=True,
        transport=transport,
        **kwargs,
    )


def _should_retry(status_code: int) -> bool:
    # Other 4xx responses are final
    return status_code == 429 or status_code >= 500


async def fetch_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    attempts: int = 3,
    backoff: float = 0.5,
    timeout: float = 8.0,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    """
    GET a URL with bounded retries and linear backoff.

    Retries on transport errors, timeouts, 5xx and 429. Any other response,
    including other 4xx codes, is returned immediately.

    Args:
        client: Shared async HTTP client
        url: URL to fetch
        attempts: Maximum number of attempts
        backoff: Delay unit in seconds; attempt N waits backoff * N before retrying
        timeout: Per-attempt timeout in seconds
        headers: Extra headers for this request

    Returns:
        The final httpx.Response (callers check ``is_success``)

    Raises:
        FetchError: If every attempt failed without a response
    """
    attempts = max(1, attempts)
    last_error: Exception | None = None
    last_response: httpx.Response | None = None

    for attempt in range(1, attempts + 1):
        try:
            response = await client.get(url, headers=headers, timeout=timeout)
        except httpx.HTTPError as e:
            last_error = e
            logger.debug("GET %s failed (attempt %d/%d): %s", url, attempt, attempts, e)
        else:
            if response.is_success or not _should_retry(response.status_code):
                return response
            last_response = response
            last_error = None
            logger.debug(
                "GET %s returned %d (attempt %d/%d)",
                url,
                response.status_code,
                attempt,
                attempts,
            )

        if attempt < attempts and backoff > 0:
            await asyncio.sleep(backoff * attempt)

    if last_response is not None and last_error is None:
        return last_response

    raise FetchError(f"Request to {url} failed after {attempts} attempts: {last_error}")


async def fetch_text(
    client: httpx.AsyncClient,
    url: str,
    *,
    timeout: float = 6.0,
    attempts: int = 1,
    backoff: float = 0.0,
    headers: dict[str, str] | None = None,
) -> str | None:
    """
    Fetch a URL and return its body, or None on any failure.

    Args:
        client: Shared async HTTP client
        url: URL to fetch
        timeout: Per-attempt timeout in seconds
        attempts: Maximum number of attempts
        backoff: Delay unit between attempts in seconds
        headers: Extra headers for this request

    Returns:
        Response text for a 2xx response, otherwise None
    """
    try:
        response = await fetch_with_retry(
            client,
            url,
            attempts=attempts,
            backoff=backoff,
            timeout=timeout,
            headers=headers,
        )
    except FetchError as e:
        logger.debug("No response from %s: %s", url, e)
        return None

    if not response.is_success:
        logger.debug("Non-success response from %s: %d", url, response.status_code)
        return None
    return response.text

"""Integration tests for API endpoints.

This module tests all API endpoints:
- Health endpoints
- Feed and channel feed endpoints
- Resolve endpoint
- Subscription endpoints
- Settings endpoints
- Error mapping, rate limiting and metrics
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from subbed.api.app import create_app
from subbed.api.services import AppServices
from subbed.core.config import Settings
from subbed.core.constants import API_V1_PREFIX
from subbed.core.exceptions import StorageError

from .fakes import (
    BASE_URL,
    CHANNEL_A,
    CHANNEL_B,
    FakeYouTube,
    FeedItem,
    atom_feed,
    channel_page,
    video_id,
)

FEED = f"{API_V1_PREFIX}/feed"
CHANNEL_FEED = f"{API_V1_PREFIX}/channel-feed"
RESOLVE = f"{API_V1_PREFIX}/resolve"
SUBSCRIPTIONS = f"{API_V1_PREFIX}/subscriptions"
SETTINGS = f"{API_V1_PREFIX}/settings"


@pytest.fixture
def alpha(fake_youtube: FakeYouTube, sample_items: list[FeedItem]) -> None:
    """Channel A with a feed, a channel page and an oEmbed record for @alpha."""
    fake_youtube.feeds[CHANNEL_A] = atom_feed(CHANNEL_A, "Alpha", sample_items)
    fake_youtube.pages[f"/channel/{CHANNEL_A}"] = channel_page(CHANNEL_A, "Alpha")
    fake_youtube.oembed[f"{BASE_URL}/@alpha"] = {
        "author_name": "Alpha",
        "author_url": f"{BASE_URL}/channel/{CHANNEL_A}",
    }


class TestHealthEndpoints:
    """Test health check endpoints."""

    def test_health_endpoint(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data
        assert "uptime_seconds" in data

    def test_liveness(self, client: TestClient) -> None:
        response = client.get("/health/live")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "alive"

    def test_readiness_with_local_storage(self, client: TestClient) -> None:
        """Given: Local storage and no Redis
        When: GET /health/ready
        Then: Returns healthy with the storage backend reported
        """
        response = client.get("/health/ready")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["storage"]["backend"] == "local"
        assert "redis" not in data["components"]

    def test_readiness_degraded_without_redis(
        self, client: TestClient, services: AppServices
    ) -> None:
        feed_cache = MagicMock()
        feed_cache.health_check = AsyncMock(
            return_value={"status": "unavailable", "latency_ms": 0, "available": False}
        )
        services.feed_cache = feed_cache

        response = client.get("/health/ready")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "degraded"

    def test_readiness_unhealthy_when_storage_down(
        self, client: TestClient, services: AppServices
    ) -> None:
        manager = MagicMock()
        manager.ping = AsyncMock(return_value=False)
        services.stores.manager = manager

        response = client.get("/health/ready")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["status"] == "unhealthy"

    def test_request_id_header(self, client: TestClient) -> None:
        """An upstream X-Request-ID is echoed back; otherwise one is generated."""
        echoed = client.get("/health", headers={"X-Request-ID": "req-123"})
        generated = client.get("/health")

        assert echoed.headers["X-Request-ID"] == "req-123"
        assert generated.headers["X-Request-ID"]


class TestSubscriptionEndpoints:
    """Test subscription CRUD."""

    def test_empty_list(self, client: TestClient) -> None:
        response = client.get(SUBSCRIPTIONS)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == []

    def test_add_by_id_looks_up_title(self, client: TestClient, alpha: None) -> None:
        response = client.post(SUBSCRIPTIONS, json={"id": CHANNEL_A})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["ok"] is True
        assert data["subscription"]["id"] == CHANNEL_A
        assert data["subscription"]["title"] == "Alpha"
        assert data["subscription"]["url"] == f"{BASE_URL}/channel/{CHANNEL_A}"

    def test_add_by_url_resolves(self, client: TestClient, alpha: None) -> None:
        response = client.post(SUBSCRIPTIONS, json={"url": "@alpha"})

        assert response.status_code == status.HTTP_200_OK
        subscription = response.json()["subscription"]
        assert subscription["id"] == CHANNEL_A
        assert subscription["title"] == "Alpha"
        assert subscription["url"] == "@alpha"

    def test_explicit_title_wins(self, client: TestClient, alpha: None) -> None:
        response = client.post(SUBSCRIPTIONS, json={"id": CHANNEL_A, "title": "My Alpha"})

        assert response.json()["subscription"]["title"] == "My Alpha"

    @pytest.mark.parametrize(
        "payload,message",
        [
            ({}, "id or url is required"),
            ({"id": "not-a-channel"}, "Invalid channel ID: not-a-channel"),
        ],
    )
    def test_bad_requests(self, client: TestClient, payload: dict, message: str) -> None:
        response = client.post(SUBSCRIPTIONS, json=payload)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["message"] == message

    def test_unresolvable_url(self, client: TestClient) -> None:
        response = client.post(SUBSCRIPTIONS, json={"url": "@nobody"})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error_code"] == "CHANNEL_NOT_RESOLVED"

    def test_remove_one_and_clear(self, client: TestClient, alpha: None) -> None:
        client.post(SUBSCRIPTIONS, json={"id": CHANNEL_A})
        client.post(SUBSCRIPTIONS, json={"id": CHANNEL_B, "title": "Bravo"})

        response = client.delete(SUBSCRIPTIONS, params={"id": CHANNEL_A})
        assert response.json() == {"ok": True}
        assert [s["id"] for s in client.get(SUBSCRIPTIONS).json()] == [CHANNEL_B]

        client.delete(SUBSCRIPTIONS)
        assert client.get(SUBSCRIPTIONS).json() == []

    def test_storage_failure_is_500(self, client: TestClient, services: AppServices) -> None:
        services.stores.subscriptions.list = AsyncMock(  # type: ignore[method-assign]
            side_effect=StorageError("disk full")
        )

        response = client.get(SUBSCRIPTIONS)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error_code"] == "STORAGE_ERROR"


class TestFeedEndpoints:
    """Test the aggregated and single-channel feeds."""

    def test_empty_feed(self, client: TestClient) -> None:
        response = client.get(FEED)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"page": 1, "per_page": 20, "total": 0, "items": []}

    def test_aggregated_feed(self, client: TestClient, alpha: None) -> None:
        """Given: One subscription with three uploads
        When: GET /feed
        Then: All three are returned newest first with external field names
        """
        client.post(SUBSCRIPTIONS, json={"id": CHANNEL_A})

        response = client.get(FEED, params={"per_page": 2})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total"] == 3
        assert [item["id"] for item in data["items"]] == [video_id(0), video_id(1)]
        first = data["items"][0]
        assert first["isShort"] is False
        assert first["channelId"] == CHANNEL_A
        assert first["channelTitle"] == "Alpha"
        assert first["publishedAt"].startswith("2024-01-10")

    def test_search(self, client: TestClient, alpha: None) -> None:
        client.post(SUBSCRIPTIONS, json={"id": CHANNEL_A})

        response = client.get(FEED, params={"q": "description 2"})

        assert [item["id"] for item in response.json()["items"]] == [video_id(2)]

    def test_all_channels_failing_is_502(
        self, client: TestClient, fake_youtube: FakeYouTube
    ) -> None:
        client.post(SUBSCRIPTIONS, json={"id": CHANNEL_A, "title": "Alpha"})
        fake_youtube.feeds[CHANNEL_A] = 500

        response = client.get(FEED)

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.json()["error_code"] == "FEED_UNAVAILABLE"

    @pytest.mark.parametrize(
        "params",
        [{"type": "livestream"}, {"per_page": 0}, {"per_page": 101}, {"page": 0}],
    )
    def test_invalid_query(self, client: TestClient, params: dict) -> None:
        response = client.get(FEED, params=params)

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_channel_feed_by_id(self, client: TestClient, alpha: None) -> None:
        response = client.get(CHANNEL_FEED, params={"id": CHANNEL_A, "limit": 2})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["channelId"] == CHANNEL_A
        assert data["channelTitle"] == "Alpha"
        assert len(data["items"]) == 2

    def test_channel_feed_resolves_input(self, client: TestClient, alpha: None) -> None:
        response = client.get(CHANNEL_FEED, params={"id": "@alpha"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["channelId"] == CHANNEL_A

    def test_channel_feed_requires_id(self, client: TestClient) -> None:
        response = client.get(CHANNEL_FEED)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["message"] == "id is required"

    def test_channel_feed_unresolvable(self, client: TestClient) -> None:
        response = client.get(CHANNEL_FEED, params={"id": "@nobody"})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_channel_feed_upstream_error(
        self, client: TestClient, fake_youtube: FakeYouTube
    ) -> None:
        fake_youtube.feeds[CHANNEL_B] = 404

        response = client.get(CHANNEL_FEED, params={"id": CHANNEL_B})

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        data = response.json()
        assert data["error_code"] == "FEED_FETCH_FAILED"
        assert data["details"] == {"channel_id": CHANNEL_B, "status": 404}


class TestResolveEndpoint:
    """Test channel resolution."""

    def test_requires_input(self, client: TestClient) -> None:
        response = client.get(RESOLVE)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["message"] == "url is required"

    def test_canonical_id(self, client: TestClient) -> None:
        response = client.get(RESOLVE, params={"url": CHANNEL_A})

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"channelId": CHANNEL_A, "title": None}

    def test_handle_via_q_alias(self, client: TestClient, alpha: None) -> None:
        response = client.get(RESOLVE, params={"q": "@alpha"})

        assert response.json() == {"channelId": CHANNEL_A, "title": "Alpha"}

    def test_unresolvable(self, client: TestClient) -> None:
        response = client.get(RESOLVE, params={"url": "@nobody"})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"] == "NOT_FOUND"


class TestSettingsEndpoints:
    """Test settings read and validated update."""

    def test_defaults(self, client: TestClient) -> None:
        response = client.get(SETTINGS)

        assert response.status_code == status.HTTP_200_OK
        settings = response.json()["settings"]
        assert settings["per_page"] == 20
        assert settings["defaultFeedType"] == "all"
        assert settings["sortOrder"] == "newest"

    def test_partial_update(self, client: TestClient) -> None:
        response = client.post(SETTINGS, json={"per_page": 40, "sortOrder": "oldest", "x": 1})

        assert response.status_code == status.HTTP_200_OK
        settings = response.json()["settings"]
        assert settings["per_page"] == 40
        assert settings["sortOrder"] == "oldest"
        assert client.get(SETTINGS).json()["settings"] == settings

    def test_out_of_range_rejected_and_unchanged(self, client: TestClient) -> None:
        """Given: per_page stored as 30
        When: POST per_page=150
        Then: Returns 422 and the stored settings are unchanged
        """
        client.post(SETTINGS, json={"per_page": 30})

        response = client.post(SETTINGS, json={"per_page": 150})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        data = response.json()
        assert data["error_code"] == "INVALID_SETTINGS"
        assert data["details"]["errors"][0]["field"] == "per_page"
        assert client.get(SETTINGS).json()["settings"]["per_page"] == 30

    def test_stored_per_page_drives_feed(self, client: TestClient) -> None:
        client.post(SETTINGS, json={"per_page": 7})

        assert client.get(FEED).json()["per_page"] == 7


class TestErrorHandling:
    """Test the generic error path."""

    def test_unexpected_error_is_500(self, app, services: AppServices) -> None:
        services.aggregator.load_aggregated_feed = AsyncMock(  # type: ignore[method-assign]
            side_effect=RuntimeError("kaboom")
        )

        with TestClient(app, raise_server_exceptions=False) as test_client:
            response = test_client.get(FEED)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        data = response.json()
        assert data["error_code"] == "INTERNAL_ERROR"
        assert data["details"]["error"] == "kaboom"

    def test_unknown_route(self, client: TestClient) -> None:
        response = client.get("/nope")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"] == "NOT_FOUND"


class TestRateLimitingAndMetrics:
    """Test the optional middleware."""

    def test_rate_limit_exceeded(self, settings: Settings, services: AppServices) -> None:
        """Given: A limit of 2 requests per minute
        When: Making a third request
        Then: Returns 429 with a Retry-After header
        """
        limited = settings.model_copy(
            update={"rate_limit_enabled": True, "rate_limit_default": "2/minute"}
        )
        app = create_app(settings=limited, services=services)

        with TestClient(app) as test_client:
            assert test_client.get("/health/live").status_code == status.HTTP_200_OK
            assert test_client.get("/health/live").status_code == status.HTTP_200_OK
            response = test_client.get("/health/live")

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response.json()["error_code"] == "RATE_LIMIT_EXCEEDED"
        assert "Retry-After" in response.headers

    def test_metrics_endpoint(self, settings: Settings, services: AppServices) -> None:
        enabled = settings.model_copy(update={"prometheus_enabled": True})
        app = create_app(settings=enabled, services=services)

        with TestClient(app) as test_client:
            test_client.get("/health")
            response = test_client.get("/metrics")

        assert response.status_code == status.HTTP_200_OK
        assert "api_requests_total" in response.text
        assert 'endpoint="/health"' in response.text

    def test_metrics_disabled(self, client: TestClient) -> None:
        assert client.get("/metrics").status_code == status.HTTP_404_NOT_FOUND

"""Pytest fixtures for the feed service tests.

This module provides:
- A fake YouTube upstream served through ``httpx.MockTransport``
- Atom feed and HTML page builders
- Test settings pointing the local JSON backend at a temp directory
- Service container and FastAPI test client fixtures
"""

from collections.abc import Generator
from datetime import timedelta
from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from subbed.api.app import create_app
from subbed.api.services import AppServices
from subbed.core.config import Settings, get_settings
from subbed.core.http_session import create_client
from subbed.storage.factory import open_local_stores

from .fakes import BASE_TIME, FakeYouTube, FeedItem, video_id

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_youtube() -> FakeYouTube:
    return FakeYouTube()


@pytest.fixture
def http_client(fake_youtube: FakeYouTube) -> httpx.AsyncClient:
    """Async client wired to the fake upstream."""
    return httpx.AsyncClient(
        transport=httpx.MockTransport(fake_youtube.handler),
        follow_redirects=True,
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings for tests: local storage in a temp dir, no Redis, no backoff."""
    return Settings(
        storage_backend="local",
        data_dir=str(tmp_path),
        redis_enabled=False,
        rate_limit_enabled=False,
        prometheus_enabled=False,
        feed_backoff=0.0,
        classifier_backoff=0.0,
    )


@pytest.fixture
def services(settings: Settings, fake_youtube: FakeYouTube) -> AppServices:
    """Service container over local stores and the fake upstream."""
    client = create_client(settings, transport=httpx.MockTransport(fake_youtube.handler))
    return AppServices.create(settings, open_local_stores(settings), client)


@pytest.fixture
def app(services: AppServices) -> FastAPI:
    return create_app(services=services)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Create test client for FastAPI application."""
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture
def sample_items() -> list[FeedItem]:
    """Three regular uploads, newest first, one day apart."""
    return [
        FeedItem(video_id(n), f"Upload {n}", BASE_TIME - timedelta(days=n), f"Description {n}")
        for n in range(3)
    ]

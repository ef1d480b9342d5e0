"""Tests for the subscription and settings stores.

These tests verify:
- Local JSON subscription CRUD and newest-first ordering
- Validated, all-or-nothing settings writes
- Backend selection
- The MongoDB stores against mocked collections
"""

import asyncio
import json
import threading
from datetime import timedelta
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from subbed.core.config import Settings
from subbed.core.exceptions import SettingsValidationError, StorageError
from subbed.core.schemas import ChannelRef, FeedType, SortOrder, UserSettings
from subbed.storage import local
from subbed.storage.factory import open_local_stores, open_stores
from subbed.storage.local import LocalSettingsStore, LocalSubscriptionStore
from subbed.storage.mongo import MongoSettingsStore, MongoSubscriptionStore

from .fakes import BASE_TIME, CHANNEL_A, CHANNEL_B, CHANNEL_C

ALL_CHANNELS = [CHANNEL_A, CHANNEL_B, CHANNEL_C]


def ref(channel_id: str, minutes: int = 0, title: str | None = None) -> ChannelRef:
    return ChannelRef(
        channel_id=channel_id, title=title, created_at=BASE_TIME + timedelta(minutes=minutes)
    )


# =============================================================================
# Local subscriptions
# =============================================================================


class TestLocalSubscriptionStore:
    """Test the JSON array subscription store."""

    @pytest.fixture
    def store(self, tmp_path: Path) -> LocalSubscriptionStore:
        return LocalSubscriptionStore(tmp_path / "subscriptions.json")

    @pytest.mark.asyncio
    async def test_missing_file_is_empty(self, store: LocalSubscriptionStore) -> None:
        assert await store.list() == []

    @pytest.mark.asyncio
    async def test_list_newest_first(self, store: LocalSubscriptionStore) -> None:
        await store.add(ref(CHANNEL_A, 0))
        await store.add(ref(CHANNEL_B, 10))
        await store.add(ref(CHANNEL_C, 5))

        assert [r.channel_id for r in await store.list()] == [CHANNEL_B, CHANNEL_C, CHANNEL_A]

    @pytest.mark.asyncio
    async def test_add_replaces_same_channel(self, store: LocalSubscriptionStore) -> None:
        await store.add(ref(CHANNEL_A, 0, title="Old"))
        await store.add(ref(CHANNEL_A, 1, title="New"))

        refs = await store.list()
        assert len(refs) == 1
        assert refs[0].title == "New"

    @pytest.mark.asyncio
    async def test_file_io_runs_in_worker_thread(
        self, store: LocalSubscriptionStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Given: The local subscription store
        When: Adding and listing subscriptions
        Then: Every file read and write happens off the event loop thread
        """
        on_main_thread: list[bool] = []

        def recording(func):
            def wrapper(*args):
                on_main_thread.append(threading.current_thread() is threading.main_thread())
                return func(*args)

            return wrapper

        monkeypatch.setattr(local, "_read_text", recording(local._read_text))
        monkeypatch.setattr(local, "_write_json", recording(local._write_json))

        await store.add(ref(CHANNEL_A))
        await store.list()

        assert len(on_main_thread) == 3
        assert not any(on_main_thread)

    @pytest.mark.asyncio
    async def test_concurrent_adds_keep_every_record(self, store: LocalSubscriptionStore) -> None:
        await asyncio.gather(*(store.add(ref(cid, i)) for i, cid in enumerate(ALL_CHANNELS)))

        assert {r.channel_id for r in await store.list()} == set(ALL_CHANNELS)

    @pytest.mark.asyncio
    async def test_persisted_shape(self, store: LocalSubscriptionStore) -> None:
        await store.add(ref(CHANNEL_A, title="Alpha"))

        records = json.loads(store.path.read_text())
        assert records == [
            {
                "id": CHANNEL_A,
                "title": "Alpha",
                "url": None,
                "created_at": BASE_TIME.isoformat(),
            }
        ]

    @pytest.mark.asyncio
    async def test_remove_and_get(self, store: LocalSubscriptionStore) -> None:
        await store.add(ref(CHANNEL_A))
        await store.add(ref(CHANNEL_B))

        assert await store.remove(CHANNEL_A) is True
        assert await store.remove(CHANNEL_A) is False
        assert await store.get(CHANNEL_A) is None
        assert (await store.get(CHANNEL_B)).channel_id == CHANNEL_B

    @pytest.mark.asyncio
    async def test_clear(self, store: LocalSubscriptionStore) -> None:
        await store.add(ref(CHANNEL_A))
        await store.clear()

        assert await store.list() == []

    @pytest.mark.asyncio
    async def test_invalid_records_are_skipped(self, store: LocalSubscriptionStore) -> None:
        store.path.write_text(
            json.dumps([{"id": "not-a-channel"}, ref(CHANNEL_A).to_record(), "junk"])
        )

        assert [r.channel_id for r in await store.list()] == [CHANNEL_A]

    @pytest.mark.asyncio
    async def test_corrupt_file_raises(self, store: LocalSubscriptionStore) -> None:
        store.path.write_text("{not json")

        with pytest.raises(StorageError):
            await store.list()


# =============================================================================
# Local settings
# =============================================================================


class TestLocalSettingsStore:
    """Test validated settings persistence."""

    @pytest.fixture
    def store(self, tmp_path: Path) -> LocalSettingsStore:
        return LocalSettingsStore(tmp_path / "settings.json")

    @pytest.mark.asyncio
    async def test_defaults_written_on_first_read(self, store: LocalSettingsStore) -> None:
        settings = await store.read()

        assert settings == UserSettings()
        assert json.loads(store.path.read_text())["defaultFeedType"] == "all"

    @pytest.mark.asyncio
    async def test_partial_write_merges(self, store: LocalSettingsStore) -> None:
        await store.write({"per_page": 30})
        merged = await store.write({"sortOrder": "oldest", "defaultFeedType": "short"})

        assert merged.per_page == 30
        assert merged.sort_order is SortOrder.OLDEST
        assert merged.default_feed_type is FeedType.SHORT
        assert await store.read() == merged

    @pytest.mark.asyncio
    async def test_out_of_range_value_is_rejected_and_nothing_persisted(
        self, store: LocalSettingsStore
    ) -> None:
        """Given: Valid stored settings
        When: Writing per_page=150 together with a valid field
        Then: The write is rejected and the stored file is unchanged
        """
        await store.write({"per_page": 25})
        before = store.path.read_text()

        with pytest.raises(SettingsValidationError) as exc_info:
            await store.write({"per_page": 150, "per_channel": 10})

        assert exc_info.value.errors[0]["field"] == "per_page"
        assert store.path.read_text() == before

    @pytest.mark.asyncio
    async def test_all_invalid_fields_reported(self, store: LocalSettingsStore) -> None:
        with pytest.raises(SettingsValidationError) as exc_info:
            await store.write({"per_channel": 0, "concurrency": 99, "sortOrder": "random"})

        fields = {error["field"] for error in exc_info.value.errors}
        assert fields == {"per_channel", "concurrency", "sortOrder"}

    @pytest.mark.asyncio
    async def test_unknown_keys_ignored(self, store: LocalSettingsStore) -> None:
        merged = await store.write({"theme": "dark", "caching_ttl": 120})

        assert merged.caching_ttl == 120
        assert "theme" not in json.loads(store.path.read_text())

    @pytest.mark.asyncio
    async def test_invalid_stored_file_falls_back_to_defaults(
        self, store: LocalSettingsStore
    ) -> None:
        store.path.write_text(json.dumps({"per_page": 1000}))

        assert await store.read() == UserSettings()


# =============================================================================
# Backend selection
# =============================================================================


class TestOpenStores:
    """Test storage backend selection."""

    @pytest.mark.asyncio
    async def test_local_backend(self, settings: Settings) -> None:
        stores = await open_stores(settings)

        assert stores.backend == "local"
        assert isinstance(stores.subscriptions, LocalSubscriptionStore)
        assert stores.subscriptions.path == settings.subscriptions_path
        await stores.close()

    @pytest.mark.asyncio
    async def test_auto_falls_back_when_mongo_unreachable(
        self, settings: Settings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("subbed.storage.mongo.MongoDBManager.ping", AsyncMock(return_value=False))
        auto = settings.model_copy(update={"storage_backend": "auto"})

        stores = await open_stores(auto)

        assert stores.backend == "local"

    @pytest.mark.asyncio
    async def test_mongodb_backend_requires_server(
        self, settings: Settings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("subbed.storage.mongo.MongoDBManager.ping", AsyncMock(return_value=False))
        mongo = settings.model_copy(update={"storage_backend": "mongodb"})

        with pytest.raises(StorageError):
            await open_stores(mongo)

    def test_open_local_stores(self, settings: Settings) -> None:
        stores = open_local_stores(settings)

        assert stores.settings.path == settings.settings_path
        assert stores.manager is None


# =============================================================================
# MongoDB stores (mocked collections)
# =============================================================================


class AsyncCursor:
    """Minimal async cursor over a list of documents."""

    def __init__(self, docs: list[dict]) -> None:
        self.docs = docs

    def sort(self, *args) -> "AsyncCursor":
        return self

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for doc in self.docs:
            yield doc


class TestMongoStores:
    """Test the MongoDB stores with mocked motor collections."""

    @pytest.mark.asyncio
    async def test_subscription_add_upserts(self) -> None:
        collection = MagicMock()
        collection.replace_one = AsyncMock()
        store = MongoSubscriptionStore(collection, "user-1")

        await store.add(ref(CHANNEL_A, title="Alpha"))

        filter_doc, doc = collection.replace_one.call_args.args
        assert filter_doc == {"user_id": "user-1", "id": CHANNEL_A}
        assert doc["title"] == "Alpha"
        assert collection.replace_one.call_args.kwargs == {"upsert": True}

    @pytest.mark.asyncio
    async def test_subscription_list_skips_invalid_documents(self) -> None:
        collection = MagicMock()
        collection.find.return_value = AsyncCursor(
            [
                {"_id": 1, "user_id": "user-1", "id": CHANNEL_A, "created_at": BASE_TIME},
                {"_id": 2, "user_id": "user-1", "id": "bogus"},
            ]
        )
        store = MongoSubscriptionStore(collection, "user-1")

        refs = await store.list()

        assert [r.channel_id for r in refs] == [CHANNEL_A]
        collection.find.assert_called_once_with({"user_id": "user-1"})

    @pytest.mark.asyncio
    async def test_subscription_remove(self) -> None:
        collection = MagicMock()
        collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
        store = MongoSubscriptionStore(collection, "user-1")

        assert await store.remove(CHANNEL_A) is True

    @pytest.mark.asyncio
    async def test_settings_read_merges_over_defaults(self) -> None:
        collection = MagicMock()
        collection.find_one = AsyncMock(return_value={"settings": {"per_page": 40}})
        store = MongoSettingsStore(collection, "user-1")

        settings = await store.read()

        assert settings.per_page == 40
        assert settings.per_channel == UserSettings().per_channel

    @pytest.mark.asyncio
    async def test_settings_invalid_write_persists_nothing(self) -> None:
        collection = MagicMock()
        collection.find_one = AsyncMock(return_value=None)
        collection.replace_one = AsyncMock()
        store = MongoSettingsStore(collection, "user-1")

        with pytest.raises(SettingsValidationError):
            await store.write({"per_page": 150})

        collection.replace_one.assert_not_called()

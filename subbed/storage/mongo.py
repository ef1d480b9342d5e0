"""MongoDB backend for subscriptions and user settings.

Documents are scoped by a ``user_id`` field so several identities can share
one database.

Usage:
    # Context manager
    async with MongoDBManager(settings) as db:
        subscriptions = MongoSubscriptionStore(db.subscriptions, "local")

    # Manual lifecycle
    db = MongoDBManager(settings)
    try:
        await db.initialize()
        await db.ping()
    finally:
        await db.close()
"""

import logging
from datetime import datetime, timezone
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pydantic import ValidationError

from subbed.core.config import Settings, get_settings
from subbed.core.schemas import ChannelRef, UserSettings
from subbed.storage.base import SettingsStore, SubscriptionStore

logger = logging.getLogger(__name__)


class MongoDBManager:
    """Manage the MongoDB connection and collections.

    This class provides:
    - Connection lifecycle management
    - Reachability probe used for backend selection
    - Index management
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize MongoDB manager."""
        self.settings = settings or get_settings()
        self.client: AsyncIOMotorClient | None = None
        self.db: AsyncIOMotorDatabase | None = None
        self.subscriptions: Any | None = None
        self.user_settings: Any | None = None
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize MongoDB connection."""
        if self._initialized:
            return

        self.client = AsyncIOMotorClient(
            self.settings.mongodb_url,
            serverSelectionTimeoutMS=self.settings.mongodb_timeout_ms,
            tz_aware=True,
        )
        self.db = self.client[self.settings.mongodb_database]
        self.subscriptions = self.db.subscriptions
        self.user_settings = self.db.settings
        self._initialized = True

    async def close(self) -> None:
        """Close MongoDB connection."""
        if self.client and self._initialized:
            self.client.close()
            self._initialized = False

    async def __aenter__(self) -> "MongoDBManager":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def ping(self) -> bool:
        """Check that the server answers within the selection timeout.

        Returns:
            True if reachable, False otherwise
        """
        await self.initialize()
        try:
            await self.client.admin.command("ping")
            return True
        except Exception as e:
            logger.debug("MongoDB ping failed: %s", e)
            return False

    async def init_indexes(self) -> None:
        """Initialize database indexes."""
        await self.initialize()

        await self.subscriptions.create_index([("user_id", 1), ("id", 1)], unique=True)
        await self.subscriptions.create_index([("user_id", 1), ("created_at", -1)])
        await self.user_settings.create_index("user_id", unique=True)


class MongoSubscriptionStore(SubscriptionStore):
    """Subscriptions stored one document per channel."""

    def __init__(self, collection: Any, user_id: str) -> None:
        self.collection = collection
        self.user_id = user_id

    async def add(self, ref: ChannelRef) -> ChannelRef:
        doc = {
            "user_id": self.user_id,
            "id": ref.channel_id,
            "title": ref.title,
            "url": ref.url,
            "created_at": ref.created_at,
        }
        await self.collection.replace_one(
            {"user_id": self.user_id, "id": ref.channel_id}, doc, upsert=True
        )
        logger.info("Subscription added: %s", ref.channel_id)
        return ref

    async def remove(self, channel_id: str) -> bool:
        result = await self.collection.delete_one({"user_id": self.user_id, "id": channel_id})
        return result.deleted_count > 0

    async def clear(self) -> None:
        result = await self.collection.delete_many({"user_id": self.user_id})
        logger.info("Cleared %d subscriptions", result.deleted_count)

    async def list(self) -> list[ChannelRef]:
        cursor = self.collection.find({"user_id": self.user_id}).sort("created_at", -1)

        refs = []
        async for doc in cursor:
            try:
                refs.append(ChannelRef.model_validate(doc))
            except ValidationError as e:
                logger.warning("Skipping invalid subscription document %r: %s", doc.get("id"), e)
        return refs


class MongoSettingsStore(SettingsStore):
    """User settings stored as one document per user."""

    def __init__(self, collection: Any, user_id: str) -> None:
        self.collection = collection
        self.user_id = user_id

    async def read(self) -> UserSettings:
        defaults = UserSettings()
        doc = await self.collection.find_one({"user_id": self.user_id})
        if not doc or not isinstance(doc.get("settings"), dict):
            return defaults
        try:
            return UserSettings.model_validate({**defaults.to_record(), **doc["settings"]})
        except ValidationError as e:
            logger.warning("Invalid stored settings for %s, using defaults: %s", self.user_id, e)
            return defaults

    async def _persist(self, settings: UserSettings) -> None:
        await self.collection.replace_one(
            {"user_id": self.user_id},
            {
                "user_id": self.user_id,
                "settings": settings.to_record(),
                "updated_at": datetime.now(timezone.utc),
            },
            upsert=True,
        )

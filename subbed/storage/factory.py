"""Backend selection for the subscription and settings stores."""

import logging
from dataclasses import dataclass

from subbed.core.config import Settings
from subbed.core.exceptions import StorageError
from subbed.storage.base import SettingsStore, SubscriptionStore
from subbed.storage.local import LocalSettingsStore, LocalSubscriptionStore
from subbed.storage.mongo import MongoDBManager, MongoSettingsStore, MongoSubscriptionStore

logger = logging.getLogger(__name__)


@dataclass
class StoreBundle:
    """The active storage backend and its stores."""

    backend: str
    subscriptions: SubscriptionStore
    settings: SettingsStore
    manager: MongoDBManager | None = None

    async def close(self) -> None:
        if self.manager is not None:
            await self.manager.close()


def open_local_stores(settings: Settings) -> StoreBundle:
    """Build the local JSON file stores."""
    return StoreBundle(
        backend="local",
        subscriptions=LocalSubscriptionStore(settings.subscriptions_path),
        settings=LocalSettingsStore(settings.settings_path),
    )


async def open_stores(settings: Settings) -> StoreBundle:
    """
    Open the configured storage backend.

    ``auto`` probes MongoDB and falls back to local files when it is not
    reachable; ``mongodb`` fails if the server cannot be reached.

    Args:
        settings: Application settings

    Returns:
        StoreBundle for the selected backend

    Raises:
        StorageError: If ``mongodb`` was requested and the server is unreachable
    """
    if settings.storage_backend == "local":
        logger.info("Using local JSON storage in %s", settings.data_path)
        return open_local_stores(settings)

    manager = MongoDBManager(settings)
    if await manager.ping():
        await manager.init_indexes()
        logger.info("Using MongoDB storage (%s)", settings.mongodb_database)
        return StoreBundle(
            backend="mongodb",
            subscriptions=MongoSubscriptionStore(manager.subscriptions, settings.store_user_id),
            settings=MongoSettingsStore(manager.user_settings, settings.store_user_id),
            manager=manager,
        )

    await manager.close()
    if settings.storage_backend == "mongodb":
        raise StorageError(f"MongoDB is not reachable at {settings.mongodb_url}")

    logger.warning("MongoDB unavailable, falling back to local JSON storage")
    return open_local_stores(settings)

"""Storage backends for subscriptions, settings and the feed cache.

Usage:
    bundle = await open_stores(settings)
    try:
        subs = await bundle.subscriptions.list()
    finally:
        await bundle.close()
"""

from subbed.storage.base import SettingsStore, SubscriptionStore
from subbed.storage.factory import StoreBundle, open_local_stores, open_stores
from subbed.storage.local import LocalSettingsStore, LocalSubscriptionStore
from subbed.storage.mongo import MongoDBManager, MongoSettingsStore, MongoSubscriptionStore
from subbed.storage.redis import FeedCache

__all__ = [
    "SettingsStore",
    "SubscriptionStore",
    "StoreBundle",
    "open_stores",
    "open_local_stores",
    "LocalSettingsStore",
    "LocalSubscriptionStore",
    "MongoDBManager",
    "MongoSettingsStore",
    "MongoSubscriptionStore",
    "FeedCache",
]

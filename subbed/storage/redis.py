"""Redis cache for raw channel feed documents.

Feed documents are cached for the user's ``caching_ttl`` seconds. When Redis
is unreachable the cache operates in degraded mode: reads miss and writes are
dropped, so feed fetching never depends on Redis.

Usage:
    cache = FeedCache.from_settings(settings)
    await cache.connect()

    document = await cache.get_feed("UC...")
    await cache.set_feed("UC...", document, ttl=300)
"""

import logging
from datetime import datetime, timezone
from typing import Any

import redis.asyncio as redis
from redis.asyncio import ConnectionPool

from subbed.core.config import Settings
from subbed.core.metrics import record_redis_operation

logger = logging.getLogger(__name__)


class FeedCache:
    """Redis connection manager and feed document cache."""

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        redis_db: int = 0,
        key_prefix: str = "subbed",
        health_check_timeout: float = 2.0,
        client: Any | None = None,
    ) -> None:
        """Initialize the feed cache.

        Args:
            redis_url: Redis connection URL (redis://localhost:6379)
            redis_db: Redis database number
            key_prefix: Prefix for all keys (e.g., "subbed:feed:UC...")
            health_check_timeout: Socket timeout in seconds
            client: Pre-built async Redis client (skips pool creation)
        """
        self.redis_url = redis_url
        self.redis_db = redis_db
        self.key_prefix = key_prefix
        self.health_check_timeout = health_check_timeout

        self._pool: ConnectionPool | None = None
        self._client: Any | None = client
        self._available = client is not None

    @classmethod
    def from_settings(cls, settings: Settings) -> "FeedCache":
        return cls(
            redis_url=settings.redis_url,
            redis_db=settings.redis_db,
            key_prefix=settings.redis_key_prefix,
        )

    async def connect(self) -> bool:
        """Establish Redis connection with connection pooling.

        Returns:
            True if connection successful, False otherwise
        """
        if self._client is not None:
            return self._available

        try:
            self._pool = ConnectionPool.from_url(
                self.redis_url,
                db=self.redis_db,
                decode_responses=True,
                max_connections=20,
                socket_timeout=self.health_check_timeout,
                socket_connect_timeout=self.health_check_timeout,
            )
            self._client = redis.Redis(connection_pool=self._pool)

            await self._client.ping()
            self._available = True
            record_redis_operation("ping")

            logger.info("Redis feed cache connected: %s", self._redis_url_safe())
            return True

        except Exception as e:
            logger.warning("Redis connection failed, feed cache disabled: %s", e)
            record_redis_operation("ping", status="error")
            self._available = False
            self._client = None
            self._pool = None
            return False

    async def disconnect(self) -> None:
        """Close Redis connection and pool."""
        if self._client is not None:
            try:
                await self._client.aclose()
            except Exception as e:
                logger.warning("Error closing Redis client: %s", e)
            finally:
                self._client = None
                self._available = False

        if self._pool is not None:
            try:
                await self._pool.disconnect()
            except Exception as e:
                logger.warning("Error disconnecting Redis pool: %s", e)
            finally:
                self._pool = None

        logger.debug("Redis feed cache closed")

    def _redis_url_safe(self) -> str:
        """Return sanitized Redis URL for logging (no password)."""
        if "://" not in self.redis_url:
            return self.redis_url
        scheme, rest = self.redis_url.split("://", 1)
        if "@" in rest:
            userinfo, host = rest.split("@", 1)
            if ":" in userinfo:
                username, _ = userinfo.split(":", 1)
                return f"{scheme}://{username}:***@{host}"
            return f"{scheme}://***@{host}"
        return self.redis_url

    def _make_key(self, channel_id: str) -> str:
        return f"{self.key_prefix}:feed:{channel_id}"

    async def get_feed(self, channel_id: str) -> str | None:
        """Return the cached feed document for a channel, if any.

        Args:
            channel_id: Canonical channel ID

        Returns:
            Feed XML or None on a miss or when Redis is unavailable
        """
        if not self._available or self._client is None:
            return None

        try:
            document = await self._client.get(self._make_key(channel_id))
        except Exception as e:
            logger.warning("Failed to read feed cache for %s: %s", channel_id, e)
            record_redis_operation("get", status="error")
            return None

        record_redis_operation("get", status="hit" if document is not None else "miss")
        if isinstance(document, bytes):
            document = document.decode("utf-8")
        return document

    async def set_feed(self, channel_id: str, document: str, ttl: int) -> bool:
        """Cache a feed document.

        Args:
            channel_id: Canonical channel ID
            document: Raw feed XML
            ttl: Time-to-live in seconds (non-positive disables caching)

        Returns:
            True if stored, False otherwise
        """
        if ttl <= 0 or not self._available or self._client is None:
            return False

        try:
            await self._client.set(self._make_key(channel_id), document, ex=ttl)
        except Exception as e:
            logger.warning("Failed to write feed cache for %s: %s", channel_id, e)
            record_redis_operation("set", status="error")
            return False

        record_redis_operation("set")
        return True

    async def health_check(self) -> dict[str, Any]:
        """Perform Redis health check.

        Returns:
            Health status dictionary
        """
        result: dict[str, Any] = {
            "status": "unavailable",
            "latency_ms": 0,
            "available": False,
        }

        if not self._available or self._client is None:
            return result

        try:
            start = datetime.now(timezone.utc)
            await self._client.ping()
            latency = (datetime.now(timezone.utc) - start).total_seconds() * 1000

            result["status"] = "healthy"
            result["latency_ms"] = round(latency, 2)
            result["available"] = True

        except Exception as e:
            result["status"] = "unhealthy"
            result["error"] = str(e)
            self._available = False

        return result

    @property
    def is_available(self) -> bool:
        """Check if Redis is available."""
        return self._available

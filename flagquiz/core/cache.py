"""
Redis cache for leaderboard pages and per-user views.

Values are JSON. Redis being down never fails a request: reads become misses
and writes/invalidations are skipped with a warning.
"""
import json
import logging
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from flagquiz.core.config import settings

logger = logging.getLogger(__name__)


LEADERBOARD_PREFIX = "leaderboard:"


def user_ranks_key(user_id: int | str) -> str:
    return f"user:{user_id}:ranks"


def user_stats_key(user_id: int) -> str:
    return f"user:{user_id}:stats"


class CacheManager:
    """Async Redis wrapper with JSON (de)serialization and pattern invalidation."""

    def __init__(self, url: Optional[str] = None):
        self.redis_client: Optional[redis.Redis] = None
        if url:
            # соединение ленивое: клиент подключится на первом запросе
            self.redis_client = redis.from_url(
                url,
                decode_responses=True,
                max_connections=50,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            logger.info("Redis cache configured: %s", url)
        else:
            logger.info("Redis cache disabled (REDIS_URL is empty)")

    async def get(self, key: str) -> Optional[Any]:
        if not self.redis_client:
            return None

        try:
            value = await self.redis_client.get(key)
        except RedisError as e:
            logger.warning("Cache get error for key '%s': %s", key, e)
            return None

        if not value:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            logger.error("Cache deserialization error for key '%s': %s", key, e)
            return None

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        """
        Store a value with TTL.

        Args:
            key: Cache key
            value: JSON-serializable value (dates are stringified)
            ttl: Time to live in seconds

        Returns:
            True if stored, False otherwise
        """
        if not self.redis_client:
            return False

        try:
            serialized = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.error("Cache serialization error for key '%s': %s", key, e)
            return False

        try:
            return bool(await self.redis_client.setex(key, ttl, serialized))
        except RedisError as e:
            logger.warning("Cache set error for key '%s': %s", key, e)
            return False

    async def delete(self, *keys: str) -> int:
        if not self.redis_client or not keys:
            return 0

        try:
            return await self.redis_client.delete(*keys)
        except RedisError as e:
            logger.warning("Cache delete error: %s", e)
            return 0

    async def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern (SCAN, not KEYS)."""
        if not self.redis_client:
            return 0

        try:
            keys = [k async for k in self.redis_client.scan_iter(match=pattern, count=500)]
            if not keys:
                return 0
            deleted = await self.redis_client.delete(*keys)
            logger.debug("Deleted %d keys matching pattern '%s'", deleted, pattern)
            return deleted
        except RedisError as e:
            logger.warning("Cache delete_pattern error for '%s': %s", pattern, e)
            return 0

    async def invalidate_user_cache(self, user_id: int) -> None:
        await self.delete(user_ranks_key(user_id), user_stats_key(user_id))
        logger.debug("Invalidated cache for user_id=%s", user_id)

    async def invalidate_leaderboards(self) -> None:
        # чужие ранги тоже сдвигаются, поэтому чистим все user:*:ranks
        deleted = await self.delete_pattern(f"{LEADERBOARD_PREFIX}*")
        deleted += await self.delete_pattern(user_ranks_key("*"))
        logger.debug("Invalidated leaderboard cache (%d keys)", deleted)

    async def ping(self) -> bool:
        if not self.redis_client:
            return False

        try:
            return bool(await self.redis_client.ping())
        except RedisError:
            return False

    async def close(self) -> None:
        if self.redis_client is not None:
            await self.redis_client.aclose()


# Global cache instance
cache = CacheManager(settings.REDIS_URL)

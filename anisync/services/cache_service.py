"""Redis cache for canonical anime documents.

Documents are stored as JSON under `<prefix><anime id>`. The TTL comes
from the record's status: terminal records live for the permanent TTL,
everything else for the temporary one.

The cache is an optimization only. Redis failures are logged and
treated as a miss (reads) or a no-op (writes), never raised.
"""

import json
import logging
import os
from typing import Any

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from anisync.core.policies import PERMANENT_TTL_SECONDS, TEMPORARY_TTL_SECONDS, cache_ttl

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "ani:"


def create_redis_client() -> aioredis.Redis:
    """Create a Redis client from REDIS_* environment variables."""
    return aioredis.Redis(
        host=os.getenv("REDIS_HOST", "localhost"),
        port=int(os.getenv("REDIS_PORT", "6379")),
        db=int(os.getenv("REDIS_DB", "0")),
        password=os.getenv("REDIS_PASSWORD") or None,
        decode_responses=True,
    )


class AnimeCache:
    """Status-aware cache of anime documents."""

    def __init__(
        self,
        redis: Any,
        prefix: str = DEFAULT_PREFIX,
        temporary_ttl: int = TEMPORARY_TTL_SECONDS,
        permanent_ttl: int = PERMANENT_TTL_SECONDS,
    ):
        """
        Initialize the cache.

        Args:
            redis: redis.asyncio client
            prefix: Key prefix for anime documents
            temporary_ttl: TTL (seconds) for records that may still change
            permanent_ttl: TTL (seconds) for records with a terminal status
        """
        self.redis = redis
        self.prefix = prefix
        self.temporary_ttl = temporary_ttl
        self.permanent_ttl = permanent_ttl

    def key(self, anime_id: str) -> str:
        return f"{self.prefix}{anime_id}"

    def ttl_for(self, document: dict[str, Any]) -> int:
        return cache_ttl(document.get("status"), self.temporary_ttl, self.permanent_ttl)

    async def get(self, anime_id: str) -> dict[str, Any] | None:
        """Get a cached document, or None on a miss or any Redis error."""
        try:
            raw = await self.redis.get(self.key(anime_id))
        except RedisError as e:
            logger.warning(f"Cache read failed for {anime_id}: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding unreadable cache entry for {anime_id}")
            return None

    async def set(self, anime_id: str, document: dict[str, Any], ttl: int | None = None) -> bool:
        """
        Cache a document.

        Args:
            anime_id: Anime id
            document: Canonical anime document
            ttl: TTL in seconds (chosen from the document's status if None)

        Returns:
            True if the document was cached
        """
        if ttl is None:
            ttl = self.ttl_for(document)
        try:
            await self.redis.set(self.key(anime_id), json.dumps(document), ex=ttl)
        except RedisError as e:
            logger.warning(f"Cache write failed for {anime_id}: {e}")
            return False
        return True

    async def delete(self, anime_id: str) -> bool:
        try:
            return bool(await self.redis.delete(self.key(anime_id)))
        except RedisError as e:
            logger.warning(f"Cache delete failed for {anime_id}: {e}")
            return False

    async def clear(self) -> int:
        """Remove every cached anime document. Returns the number removed."""
        removed = 0
        try:
            async for key in self.redis.scan_iter(match=f"{self.prefix}*"):
                removed += await self.redis.delete(key)
        except RedisError as e:
            logger.warning(f"Cache clear failed: {e}")
        return removed

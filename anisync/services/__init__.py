"""Application services for anisync."""

from anisync.services.anime_service import AnimeService
from anisync.services.cache_service import AnimeCache, create_redis_client

__all__ = [
    "AnimeCache",
    "AnimeService",
    "create_redis_client",
]

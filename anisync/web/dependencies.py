"""FastAPI dependencies shared by the routes."""

import os
from collections.abc import Iterator
from typing import Annotated

from fastapi import Depends, Request

from anisync.db.engine import get_session
from anisync.db.repositories import AnimeRepository
from anisync.services.anime_service import AnimeService
from anisync.services.cache_service import AnimeCache


def get_cache(request: Request) -> AnimeCache:
    """Dependency to get the anime cache bound to the app's Redis client."""
    cache_config = request.app.state.registry.cache
    return AnimeCache(
        request.app.state.redis,
        prefix=cache_config.prefix,
        temporary_ttl=cache_config.temporary_ttl,
        permanent_ttl=cache_config.permanent_ttl,
    )


def get_anime_service(
    request: Request,
    cache: Annotated[AnimeCache, Depends(get_cache)],
) -> Iterator[AnimeService]:
    """Dependency yielding an AnimeService with a fresh database session."""
    with get_session() as session:
        yield AnimeService(AnimeRepository(session), cache, request.app.state.reconciler)


def get_secret_key() -> str | None:
    """Shared secret guarding destructive operations."""
    return os.environ.get("SECRET_KEY") or None


# Type aliases for dependency injection
AnimeServiceDep = Annotated[AnimeService, Depends(get_anime_service)]
SecretKeyDep = Annotated[str | None, Depends(get_secret_key)]

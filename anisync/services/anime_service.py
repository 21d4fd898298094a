"""Read path for anime records.

Lookups go cache -> store -> live reconciliation. A reconciled record is
cached in every case, and inserted into the store only when its status
is terminal, so records that are still airing keep being refreshed.
"""

import logging
from typing import Any

from anisync.core.policies import is_terminal
from anisync.db.repositories import AnimeRepository, DuplicateAnimeError
from anisync.ingestion.resolver import Reconciler
from anisync.services.cache_service import AnimeCache

logger = logging.getLogger(__name__)


class AnimeService:
    """Service for looking up and managing anime records."""

    def __init__(
        self,
        repository: AnimeRepository,
        cache: AnimeCache,
        reconciler: Reconciler | None = None,
    ):
        """
        Initialize the service.

        Args:
            repository: Durable store
            cache: Document cache
            reconciler: Used when neither cache nor store has the record
        """
        self.repository = repository
        self.cache = cache
        self.reconciler = reconciler

    async def get_info(self, anime_id: str) -> dict[str, Any] | None:
        """
        Get the canonical document of an anime.

        Args:
            anime_id: Anime id

        Returns:
            The document, or None if no source knows the id
        """
        cached = await self.cache.get(anime_id)
        if cached is not None:
            return cached

        document = self.repository.get_document(anime_id)
        if document is not None:
            await self.cache.set(anime_id, document)
            return document

        if self.reconciler is None:
            return None

        logger.info(f"Anime {anime_id} not found in database, reconciling...")
        anime = await self.reconciler.reconcile(anime_id)
        if anime is None:
            return None

        document = anime.to_document()
        await self.cache.set(anime_id, document)
        if is_terminal(anime.status):
            logger.info(f"Inserting anime {anime_id}")
            try:
                self.repository.insert(anime)
            except DuplicateAnimeError:
                logger.info(f"Anime {anime_id} was stored concurrently")
        return document

    def count(self) -> int:
        """Number of stored anime."""
        return self.repository.count()

    async def delete_all(self) -> int:
        """
        Delete every stored anime and drop the cached documents.

        Returns:
            Number of deleted records
        """
        deleted = self.repository.delete_all()
        await self.cache.clear()
        logger.info(f"Deleted {deleted} anime")
        return deleted

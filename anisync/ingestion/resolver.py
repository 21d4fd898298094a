"""
Reconciliation Module
=====================

Fetches every provider's partial entity for one anime id and merges
them into a CanonicalAnime.

Fetching happens in two concurrent rounds:
1. Metadata, cross-reference and episode-mapping services (keyed by the
   input id)
2. Scraping providers, keyed by the native ids resolved from round 1

A provider without a resolved native id is not called at all.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from anisync.core.schema import CanonicalAnime, ScrapedInfo
from anisync.ingestion.adapters import (
    SCRAPER_REGISTRY,
    build_cross_reference_adapter,
    build_episode_mapping_adapter,
    build_metadata_adapter,
    get_scraper,
)
from anisync.ingestion.adapters.base import ProviderResult, capture
from anisync.ingestion.merge import SourceBundle, merge_sources, resolve_native_ids

if TYPE_CHECKING:
    from anisync.ingestion.adapters import (
        CrossReferenceAdapter,
        EpisodeMappingAdapter,
        MetadataAdapter,
        ScraperAdapter,
    )
    from anisync.ingestion.registry import ProviderRegistry
    from anisync.ingestion.request import ResilientClient


class Reconciler:
    """
    Reconciliation engine.

    Produces exactly one CanonicalAnime per id, or None when
    reconciliation itself breaks down. Individual provider failures only
    leave that provider's contribution empty.
    """

    def __init__(
        self,
        metadata: MetadataAdapter,
        cross_reference: CrossReferenceAdapter,
        episode_mapping: EpisodeMappingAdapter,
        scrapers: dict[str, ScraperAdapter],
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Initialize the reconciler.

        Args:
            metadata: Metadata service adapter
            cross_reference: Cross-reference service adapter
            episode_mapping: Episode-mapping service adapter
            scrapers: Scraping adapters keyed by provider name, in merge order
            logger: Logger for this component
        """
        self.metadata = metadata
        self.cross_reference = cross_reference
        self.episode_mapping = episode_mapping
        self.scrapers = scrapers
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_registry(
        cls,
        client: ResilientClient,
        registry: ProviderRegistry,
        logger: logging.Logger | None = None,
    ) -> Reconciler:
        """Create a reconciler with every configured adapter."""
        scrapers = {}
        for name in SCRAPER_REGISTRY:
            adapter = get_scraper(name, client, registry)
            if adapter is not None:
                scrapers[name] = adapter
        return cls(
            metadata=build_metadata_adapter(client, registry),
            cross_reference=build_cross_reference_adapter(client, registry),
            episode_mapping=build_episode_mapping_adapter(client, registry),
            scrapers=scrapers,
            logger=logger,
        )

    async def _fetch_scraper(self, name: str, native_id: str | None) -> ProviderResult[ScrapedInfo]:
        if not native_id:
            return ProviderResult.empty(name)
        return await capture(name, self.scrapers[name].fetch(native_id))

    async def gather(self, anime_id: str) -> SourceBundle:
        """
        Fetch every provider for an anime id.

        Never raises because of a provider: each failure becomes an empty
        ProviderResult in the bundle.
        """
        metadata, cross_reference, episode_mapping = await asyncio.gather(
            capture(self.metadata.ADAPTER_NAME, self.metadata.fetch(anime_id)),
            capture(self.cross_reference.ADAPTER_NAME, self.cross_reference.fetch(anime_id)),
            capture(self.episode_mapping.ADAPTER_NAME, self.episode_mapping.fetch(anime_id)),
        )

        native_ids = resolve_native_ids(cross_reference.value or [], self.scrapers)
        scraped = await asyncio.gather(
            *(self._fetch_scraper(name, native_ids[name]) for name in self.scrapers)
        )

        return SourceBundle(
            anime_id=anime_id,
            metadata=metadata,
            cross_reference=cross_reference,
            episode_mapping=episode_mapping,
            scraped={result.provider: result for result in scraped},
            native_ids=native_ids,
        )

    async def reconcile(self, anime_id: str) -> CanonicalAnime | None:
        """
        Reconcile one anime id.

        Args:
            anime_id: AniList id as text

        Returns:
            The canonical record (possibly incomplete), or None if
            reconciliation failed outright
        """
        try:
            bundle = await self.gather(anime_id)
            failures = bundle.failures()
            if failures:
                self.logger.info("Anime %s reconciled without: %s", anime_id, "; ".join(failures))
            return merge_sources(bundle)
        except Exception:
            self.logger.exception("Error reconciling anime %s", anime_id)
            return None

"""
Metadata Service Adapter
========================

Combines the AniList GraphQL API with the Anify info API into one
MetadataInfo. Both are queried concurrently; Anify overrides fields
that both report, with a few field-specific exceptions.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from anisync.core.schema import MetadataInfo
from anisync.ingestion.adapters.base import BaseAdapter, snake_keys

if TYPE_CHECKING:
    from anisync.ingestion.registry import ProviderConfig
    from anisync.ingestion.request import ResilientClient

logger = logging.getLogger(__name__)

INFO_QUERY = """query ($id: Int) {
  Media(id: $id) {
    id
    idMal
    title {
      romaji
      english
      native
    }
    format
    status
    startDate {
      year
      month
      day
    }
    endDate {
      year
      month
      day
    }
    studios(isMain: true) {
      nodes {
        name
      }
    }
    genres
    averageScore
    episodes
  }
}"""

# Anify fields that do not describe the anime itself
_ANIFY_DROPPED = ("episodes", "chapters", "characters", "total_volumes", "total_chapters")


class MetadataAdapter(BaseAdapter):
    """Adapter for the combined AniList + Anify metadata service."""

    ADAPTER_NAME = "anilist"

    def __init__(
        self,
        client: ResilientClient,
        config: ProviderConfig,
        info_config: ProviderConfig,
    ) -> None:
        super().__init__(client, config)
        self.info_config = info_config

    async def fetch_media(self, anime_id: int) -> dict[str, Any] | None:
        """Fetch the GraphQL `Media` object, or None on failure."""
        try:
            response = await self.client.post(
                self.base_url,
                json={"query": INFO_QUERY, "variables": {"id": anime_id}},
            )
            return (response.json().get("data") or {}).get("Media")
        except Exception as e:
            logger.error("AniList error for %s: %s", anime_id, e)
            return None

    async def fetch_info(self, anime_id: int) -> dict[str, Any] | None:
        """Fetch the Anify info document, or None on failure."""
        try:
            response = await self.client.get(f"{self.info_config.base_url}/info/{anime_id}")
            return response.json()
        except Exception as e:
            logger.error("Anify error for %s: %s", anime_id, e)
            return None

    async def fetch(self, anime_id: str) -> MetadataInfo | None:
        """
        Fetch and combine metadata for an anime.

        Args:
            anime_id: AniList id as text

        Returns:
            MetadataInfo, or None if neither upstream answered
        """
        numeric_id = int(anime_id)
        media, info = await asyncio.gather(
            self.fetch_media(numeric_id),
            self.fetch_info(numeric_id),
        )
        if media is None and info is None:
            return None
        return combine_metadata(media, info)


def combine_metadata(
    media: dict[str, Any] | None,
    info: dict[str, Any] | None,
) -> MetadataInfo:
    """
    Merge an AniList `Media` object and an Anify info document.

    Anify wins on shared fields, except:
    - status: AniList, then Anify, then ""
    - title parts: Anify, then AniList, then ""
    - genres: union, AniList order first
    - total_episodes: Anify totalEpisodes, then AniList episodes, then 0
    - studios: names of AniList main studios
    """
    anilist = snake_keys(media or {})
    anify = snake_keys(info or {})

    anilist_title = anilist.get("title") or {}
    anify_title = anify.get("title") or {}

    combined: dict[str, Any] = {}
    combined.update({k: v for k, v in anilist.items() if k not in ("episodes", "studios")})
    combined.update({k: v for k, v in anify.items() if k not in _ANIFY_DROPPED})

    # Anify reports rating and popularity per site; keep the AniList ones
    rating = anify.get("rating")
    if isinstance(rating, dict):
        rating = rating.get("anilist")
    combined["rating"] = _first_not_none(rating, anilist.get("average_score"))
    popularity = anify.get("popularity")
    combined["popularity"] = popularity.get("anilist") if isinstance(popularity, dict) else popularity

    status = anilist.get("status")
    if status is None:
        status = anify.get("status")
    combined["status"] = status if status is not None else ""

    combined["title"] = {
        part: _first_not_none(anify_title.get(part), anilist_title.get(part), "")
        for part in ("romaji", "english", "native")
    }

    combined["genres"] = list(dict.fromkeys([*(anilist.get("genres") or []), *(anify.get("genres") or [])]))

    combined["total_episodes"] = _first_not_none(
        anify.get("total_episodes"), anilist.get("episodes"), 0
    )

    studios = (anilist.get("studios") or {}).get("nodes") or []
    combined["studios"] = [s["name"] for s in studios if s.get("name")]

    for key in ("synonyms", "tags", "relations", "artwork", "mappings"):
        if combined.get(key) is None:
            combined.pop(key, None)

    return MetadataInfo.model_validate(combined)


def _first_not_none(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None

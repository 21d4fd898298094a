"""
Episode-Mapping Adapter
=======================

Adapter for the ani.zip service, which supplies per-episode metadata,
artwork and a provider-id map for an AniList id.
"""

from __future__ import annotations

from typing import Any

from anisync.core.schema import EpisodeMapping, MappedEpisode, MappingArtwork
from anisync.ingestion.adapters.base import BaseAdapter

# ani.zip cover types used for the record's images
POSTER = "Poster"
BANNER = "Banner"
FANART = "Fanart"


class EpisodeMappingAdapter(BaseAdapter):
    """Adapter for the episode-mapping service."""

    ADAPTER_NAME = "anizip"

    async def fetch(self, anime_id: str) -> EpisodeMapping:
        """Fetch episode mapping data for an AniList id."""
        response = await self.client.get(
            f"{self.base_url}/mappings", params={"anilist_id": anime_id}
        )
        return parse_mapping(anime_id, response.json())


def episode_title(episode: dict[str, Any]) -> str:
    titles = episode.get("title") or {}
    return titles.get("en") or titles.get("x-jat") or titles.get("ja") or "Unknown Title"


def find_artwork(artworks: list[MappingArtwork], cover_type: str) -> str | None:
    for artwork in artworks:
        if artwork.type == cover_type:
            return artwork.image or None
    return None


def is_index_key(key: str) -> bool:
    """Canonical non-negative integer keys, such as "1" but not "01" or "S1"."""
    return key.isascii() and key.isdigit() and str(int(key)) == key and int(key) < 2**32 - 1


def ordered_episodes(episodes: dict[str, Any]) -> list[Any]:
    """
    Episode records in upstream key order.

    Integer keys come first in ascending order, then every other key
    (specials such as "S1") in the order received.
    """
    index_keys = sorted((k for k in episodes if is_index_key(k)), key=int)
    other_keys = [k for k in episodes if not is_index_key(k)]
    return [episodes[k] for k in index_keys + other_keys]


def parse_mapping(anime_id: str, data: dict[str, Any] | None) -> EpisodeMapping:
    """Normalize an ani.zip response into an EpisodeMapping."""
    data = data or {}

    artworks = [
        MappingArtwork(type=image.get("coverType") or "Unknown", image=image.get("url") or "")
        for image in data.get("images") or []
        if isinstance(image, dict)
    ]

    synonyms = [title for title in (data.get("titles") or {}).values() if title]

    episodes = [
        MappedEpisode(
            id=str(episode.get("tvdbId") or "0"),
            title=episode_title(episode),
            thumbnail=episode.get("image") or "",
            duration=episode.get("runtime") or 0,
            description=episode.get("summary") or episode.get("overview") or "No description available",
            number=episode.get("episodeNumber") or index + 1,
            season=episode.get("seasonNumber") or 1,
            air_date=episode.get("airDateUtc") or "",
            rating=str(episode.get("rating") or "Unrated"),
        )
        for index, episode in enumerate(ordered_episodes(data.get("episodes") or {}))
        if isinstance(episode, dict)
    ]

    return EpisodeMapping(
        id=anime_id,
        title=synonyms[0] if synonyms else "Unknown Title",
        synonyms=synonyms,
        cover_image=find_artwork(artworks, POSTER),
        banner_image=find_artwork(artworks, BANNER),
        slider_image=find_artwork(artworks, FANART),
        artworks=artworks,
        episodes=episodes,
        mappings=data.get("mappings") or {},
    )

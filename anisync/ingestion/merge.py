"""
Merge Module
============

Pure functions that reconcile provider partial entities into one
CanonicalAnime. Nothing here performs I/O; the resolver gathers the
inputs and hands them over as a SourceBundle.

Precedence is expressed as an ordered list of overlays: later overlays
replace what earlier ones set, field by field.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from anisync.core.schema import (
    Artwork,
    CanonicalAnime,
    CrossReference,
    Episode,
    EpisodeMapping,
    MappedEpisode,
    MetadataInfo,
    ProviderEpisodes,
    ScrapedEpisode,
    ScrapedInfo,
)
from anisync.ingestion.adapters.base import ProviderResult

logger = logging.getLogger(__name__)

METADATA = "metadata"
EPISODE_MAPPING = "episode_mapping"

# Provenance tag of artwork coming from the episode-mapping service
EPISODE_MAPPING_PROVIDER = "anizip"

# Key of the input id in the provider-id map
METADATA_PROVIDER_KEY = "anilist"

# Fields carried over from the metadata service as-is
METADATA_FIELDS = (
    "title",
    "status",
    "id_mal",
    "format",
    "season",
    "year",
    "description",
    "color",
    "trailer",
    "country_of_origin",
    "duration",
    "rating",
    "popularity",
    "total_episodes",
    "tags",
    "studios",
    "cover_image",
    "banner_image",
    "start_date",
    "end_date",
    "relations",
)

SET_FIELDS = ("genres", "synonyms")


# ============================================================================
# Step 1: Identifier extraction
# ============================================================================


def second_path_segment(raw: str) -> str | None:
    """'category/one-piece' -> 'one-piece'."""
    parts = raw.split("/")
    if len(parts) < 2 or not parts[1]:
        return None
    return parts[1]


def verbatim(raw: str) -> str | None:
    return raw or None


# How each scraping provider's native id is read from a cross-reference id
NATIVE_ID_EXTRACTORS: dict[str, Callable[[str], str | None]] = {
    "gogoanime": second_path_segment,
    "zoro": verbatim,
}


def extract_native_id(entries: Iterable[CrossReference], provider: str) -> str | None:
    """
    Native id of `provider` from the cross-reference entries.

    Uses the first entry tagged with the provider. Returns None when there
    is no such entry or its id does not yield a native id.
    """
    extractor = NATIVE_ID_EXTRACTORS.get(provider, verbatim)
    for entry in entries:
        if entry.provider_id == provider:
            return extractor(entry.data.id)
    return None


def resolve_native_ids(
    entries: Iterable[CrossReference],
    providers: Iterable[str],
) -> dict[str, str | None]:
    """Native id (or None) for each provider, in the given order."""
    entries = list(entries)
    return {provider: extract_native_id(entries, provider) for provider in providers}


# ============================================================================
# Steps 3-4: Scalar and set fields
# ============================================================================


@dataclass(frozen=True)
class Overlay:
    """Copy `fields` from one source onto the record being built."""

    source: str
    fields: tuple[str, ...]
    only_non_empty: bool = False


SCALAR_OVERLAYS: tuple[Overlay, ...] = (
    Overlay(METADATA, METADATA_FIELDS),
    Overlay(EPISODE_MAPPING, ("banner_image", "cover_image", "slider_image"), only_non_empty=True),
)


def resolve_scalars(
    sources: Mapping[str, BaseModel | None],
    overlays: Iterable[Overlay] = SCALAR_OVERLAYS,
) -> dict[str, Any]:
    """Apply overlays in order; a missing source contributes nothing."""
    resolved: dict[str, Any] = {}
    for overlay in overlays:
        source = sources.get(overlay.source)
        if source is None:
            continue
        for name in overlay.fields:
            value = getattr(source, name, None)
            if overlay.only_non_empty and not value:
                continue
            resolved[name] = value
    return resolved


def dedupe(*groups: Iterable[str] | None) -> list[str]:
    """Concatenate groups keeping only the first occurrence of each value."""
    seen: dict[str, None] = {}
    for group in groups:
        for value in group or ():
            if value not in seen:
                seen[value] = None
    return list(seen)


def resolve_sets(ordered_sources: Iterable[BaseModel | None]) -> dict[str, list[str]]:
    """Union of every set field, in source order."""
    sources = [s for s in ordered_sources if s is not None]
    return {
        name: dedupe(*(getattr(source, name, None) for source in sources))
        for name in SET_FIELDS
    }


# ============================================================================
# Step 5: Episodes
# ============================================================================


def build_episode(index: int, episode: ScrapedEpisode, mapped: MappedEpisode) -> Episode:
    """Pair a provider episode with the mapping service's record at the same index."""
    return Episode(
        title=mapped.title or episode.title or "Untitled Episode",
        number=episode.number or index + 1,
        id=episode.id or "0",
        season=mapped.season or 1,
        is_filler=episode.is_filler or False,
        thumbnail=mapped.thumbnail or episode.image or "",
        description=mapped.description or episode.description or "No description",
        air_date=mapped.air_date or episode.release_date or "",
        duration=mapped.duration or 0,
        rating=mapped.rating or "0",
    )


def pair_episodes(
    provider_id: str,
    episodes: list[ScrapedEpisode],
    mapped: list[MappedEpisode],
) -> ProviderEpisodes:
    """
    Pair episodes positionally.

    Indexes without a mapping-service record are dropped.
    """
    return ProviderEpisodes(
        provider_id=provider_id,
        data=[
            build_episode(index, episode, mapped[index])
            for index, episode in enumerate(episodes)
            if index < len(mapped)
        ],
    )


def build_episode_lists(
    scraped: Mapping[str, ScrapedInfo | None],
    mapping: EpisodeMapping | None,
) -> list[ProviderEpisodes]:
    """One episode list per scraping provider that listed any episode."""
    mapped = mapping.episodes if mapping else []
    return [
        pair_episodes(provider, info.episodes, mapped)
        for provider, info in scraped.items()
        if info is not None and info.episodes
    ]


# ============================================================================
# Step 6: Artwork
# ============================================================================


def build_artwork(mapping: EpisodeMapping | None, metadata: MetadataInfo | None) -> list[Artwork]:
    """
    Mapping-service artwork followed by metadata-service artwork.

    Not deduplicated. Any error while building yields an empty list.
    """
    try:
        artwork = [
            Artwork(
                type=(art.type or "").lower() or "unknown",
                image=art.image or "",
                provider_id=EPISODE_MAPPING_PROVIDER,
            )
            for art in (mapping.artworks if mapping else [])
        ]
        artwork.extend(
            Artwork(
                type=art.type or "unknown",
                image=art.img or "",
                provider_id=art.provider_id or "unknown_provider",
            )
            for art in (metadata.artwork if metadata else [])
        )
    except (AttributeError, TypeError, ValueError) as e:
        logger.warning("Discarding artwork: %s", e)
        return []
    return artwork


# ============================================================================
# Step 7: Provider-id map
# ============================================================================


def build_provider_map(
    anime_id: str,
    metadata: MetadataInfo | None,
    native_ids: Mapping[str, str | None],
    mapping: EpisodeMapping | None,
) -> dict[str, Any]:
    """
    Map of provider name to provider-native id.

    Later layers win: metadata service list, resolved scraper ids, MAL id,
    the input id, then the mapping service's own map.
    """
    provider_map: dict[str, Any] = {}
    if metadata is not None:
        provider_map.update({m.provider_id: m.id for m in metadata.mappings})
    provider_map.update({p: native_id for p, native_id in native_ids.items() if native_id})
    if metadata is not None and metadata.id_mal is not None:
        provider_map["mal"] = str(metadata.id_mal)
    provider_map[METADATA_PROVIDER_KEY] = anime_id
    if mapping is not None:
        provider_map.update(mapping.mappings)
    return provider_map


# ============================================================================
# Steps 3-8 together
# ============================================================================


@dataclass
class SourceBundle:
    """Everything fetched for one anime id, one result per provider."""

    anime_id: str
    metadata: ProviderResult[MetadataInfo]
    cross_reference: ProviderResult[list[CrossReference]]
    episode_mapping: ProviderResult[EpisodeMapping]
    scraped: dict[str, ProviderResult[ScrapedInfo]] = field(default_factory=dict)
    native_ids: dict[str, str | None] = field(default_factory=dict)

    def failures(self) -> list[str]:
        """Error messages of every provider fetch that raised."""
        results = [self.metadata, self.cross_reference, self.episode_mapping, *self.scraped.values()]
        return [f"{r.provider}: {r.error}" for r in results if r.failed]


def merge_sources(bundle: SourceBundle) -> CanonicalAnime:
    """
    Reconcile a bundle into a CanonicalAnime.

    Deterministic: the same bundle always produces an equal record and
    an identical document.
    """
    metadata = bundle.metadata.value
    mapping = bundle.episode_mapping.value
    scraped = {name: result.value for name, result in bundle.scraped.items()}

    fields = resolve_scalars({METADATA: metadata, EPISODE_MAPPING: mapping})
    fields.update(resolve_sets([metadata, mapping, *scraped.values()]))

    return CanonicalAnime(
        id=bundle.anime_id,
        **fields,
        episodes=build_episode_lists(scraped, mapping),
        artwork=build_artwork(mapping, metadata),
        mappings=build_provider_map(bundle.anime_id, metadata, bundle.native_ids, mapping),
    )

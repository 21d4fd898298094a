"""Cross-reference adapter for the MALSync mapping service."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

from anisync.core.schema import CrossReference, CrossReferenceData
from anisync.ingestion.adapters.base import BaseAdapter


def identifier_from_url(url: str) -> str:
    """
    Provider-native identifier embedded in a site URL.

    The URL path without its leading slash, e.g.
    "https://anitaku.pe/category/one-piece" -> "category/one-piece".
    """
    if not url:
        return "unknown"
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return url
    return parsed.path[1:] or "unknown"


class CrossReferenceAdapter(BaseAdapter):
    """Adapter listing every site that hosts an anime."""

    ADAPTER_NAME = "malsync"

    async def fetch(self, anime_id: str) -> list[CrossReference]:
        """
        Fetch the cross-reference entries for an AniList id.

        Returns:
            One entry per site listing, empty if the service has none
        """
        response = await self.client.get(f"{self.base_url}/mal/anime/anilist:{anime_id}")
        return parse_sites(response.json())


def parse_sites(data: dict[str, Any] | None) -> list[CrossReference]:
    """Flatten the `Sites` object of a MALSync response."""
    if not data:
        return []

    entries: list[CrossReference] = []
    for site_key, listings in (data.get("Sites") or {}).items():
        for details in (listings or {}).values():
            details = details or {}
            url = details.get("url") or ""
            entries.append(
                CrossReference(
                    provider_id=(site_key or "unknown_provider").lower(),
                    data=CrossReferenceData(
                        id=identifier_from_url(url),
                        cover_image=details.get("image") or "",
                        id_mal=details.get("malId") or 0,
                        id_ani=details.get("aniId") or 0,
                        page=details.get("page") or "",
                        title=details.get("title") or "Unknown Title",
                        url=url,
                    ),
                )
            )
    return entries

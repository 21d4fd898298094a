"""
Scraping Provider Adapters
==========================

Adapters for the scraping providers (gogoanime, zoro). Both are read
through a consumet-compatible API that returns the provider's info page
together with its episode list.
"""

from __future__ import annotations

from typing import Any

from anisync.core.schema import ScrapedInfo
from anisync.ingestion.adapters.base import BaseAdapter, snake_keys


class ScraperAdapter(BaseAdapter):
    """Base for scraping providers; subclasses pick the info route."""

    INFO_ROUTE = ""

    def info_url(self, native_id: str) -> str:
        return f"{self.base_url}/anime/{self.ADAPTER_NAME}/{self.INFO_ROUTE}"

    def info_params(self, native_id: str) -> dict[str, Any] | None:
        return None

    async def fetch(self, native_id: str) -> ScrapedInfo:
        """
        Fetch info and episodes for a provider-native id.

        Args:
            native_id: The provider's own id for the anime
        """
        response = await self.client.get(
            self.info_url(native_id), params=self.info_params(native_id)
        )
        return ScrapedInfo.model_validate(snake_keys(response.json() or {}))


class GogoanimeAdapter(ScraperAdapter):
    """gogoanime: the native id is part of the path."""

    ADAPTER_NAME = "gogoanime"

    def info_url(self, native_id: str) -> str:
        return f"{self.base_url}/anime/gogoanime/info/{native_id}"


class ZoroAdapter(ScraperAdapter):
    """zoro: the native id is passed as a query parameter."""

    ADAPTER_NAME = "zoro"
    INFO_ROUTE = "info"

    def info_params(self, native_id: str) -> dict[str, Any] | None:
        return {"id": native_id}

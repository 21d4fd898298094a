"""
Adapter Registry Module
=======================

Central registry for provider adapters.
Provides factory functions for creating adapters by name.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Type

from anisync.ingestion.adapters.anilist import MetadataAdapter
from anisync.ingestion.adapters.anizip import EpisodeMappingAdapter
from anisync.ingestion.adapters.base import BaseAdapter, ProviderResult, capture
from anisync.ingestion.adapters.malsync import CrossReferenceAdapter
from anisync.ingestion.adapters.scrapers import GogoanimeAdapter, ScraperAdapter, ZoroAdapter

if TYPE_CHECKING:
    from anisync.ingestion.registry import ProviderConfig, ProviderRegistry
    from anisync.ingestion.request import ResilientClient


# Scraping providers, in the order their sets and episodes are merged
SCRAPER_REGISTRY: dict[str, Type[ScraperAdapter]] = {
    "gogoanime": GogoanimeAdapter,
    "zoro": ZoroAdapter,
}


def get_scraper(
    name: str,
    client: ResilientClient,
    registry: ProviderRegistry,
) -> ScraperAdapter | None:
    """
    Get a scraping adapter instance by provider name.

    Args:
        name: Provider name (e.g., "gogoanime")
        client: Shared resilient client
        registry: Provider registry holding the endpoint

    Returns:
        Adapter instance, or None if the name is unknown or disabled
    """
    adapter_class = SCRAPER_REGISTRY.get(name)
    config = registry.get_provider(name)
    if adapter_class is None or config is None or not config.enabled:
        return None
    return adapter_class(client, config)


def register_scraper(name: str, adapter_class: Type[ScraperAdapter]) -> None:
    """
    Register a new scraping adapter type.

    Args:
        name: Provider name, as tagged by the cross-reference service
        adapter_class: Adapter class (must inherit from ScraperAdapter)
    """
    if not issubclass(adapter_class, ScraperAdapter):
        raise TypeError(f"{adapter_class} must inherit from ScraperAdapter")
    SCRAPER_REGISTRY[name] = adapter_class


def list_scrapers() -> list[str]:
    """List all registered scraping provider names."""
    return list(SCRAPER_REGISTRY.keys())


def _require(registry: ProviderRegistry, name: str) -> ProviderConfig:
    config = registry.get_provider(name)
    if config is None:
        raise KeyError(f"Provider '{name}' is not configured")
    return config


def build_metadata_adapter(client: ResilientClient, registry: ProviderRegistry) -> MetadataAdapter:
    return MetadataAdapter(client, _require(registry, "anilist"), _require(registry, "anify"))


def build_cross_reference_adapter(
    client: ResilientClient, registry: ProviderRegistry
) -> CrossReferenceAdapter:
    return CrossReferenceAdapter(client, _require(registry, "malsync"))


def build_episode_mapping_adapter(
    client: ResilientClient, registry: ProviderRegistry
) -> EpisodeMappingAdapter:
    return EpisodeMappingAdapter(client, _require(registry, "anizip"))


__all__ = [
    # Registry functions
    "get_scraper",
    "register_scraper",
    "list_scrapers",
    "build_metadata_adapter",
    "build_cross_reference_adapter",
    "build_episode_mapping_adapter",
    "SCRAPER_REGISTRY",
    # Base classes
    "BaseAdapter",
    "ProviderResult",
    "capture",
    # Concrete adapters
    "MetadataAdapter",
    "CrossReferenceAdapter",
    "EpisodeMappingAdapter",
    "ScraperAdapter",
    "GogoanimeAdapter",
    "ZoroAdapter",
]

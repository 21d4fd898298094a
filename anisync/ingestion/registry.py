"""
Provider Registry Module
========================

Manages provider and crawl configuration loaded from a YAML file.
Providers define which upstream services are queried during
reconciliation; the global and crawl sections hold request and
sweep settings.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from anisync.core.policies import PERMANENT_TTL_SECONDS, TEMPORARY_TTL_SECONDS, GatePolicy

DEFAULT_USER_AGENT = "Anisync/0.1"
DEFAULT_ID_LIST_URL = "https://raw.githubusercontent.com/5H4D0WILA/IDFetch/main/ids.txt"


@dataclass
class RetryConfig:
    """Retry policy for outbound requests (delays in seconds)."""

    max_retries: int = 5
    base_delay: float = 1.0
    max_delay: float = 10.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("Retry delays must be >= 0")

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RetryConfig:
        """Create from dictionary, using defaults for missing values."""
        if data is None:
            return cls()
        return cls(
            max_retries=int(data.get("max_retries", 5)),
            base_delay=float(data.get("base_delay", 1.0)),
            max_delay=float(data.get("max_delay", 10.0)),
        )


@dataclass
class ProviderConfig:
    """Configuration for a single upstream provider."""

    name: str
    base_url: str
    enabled: bool = True
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProviderConfig:
        """Create from dictionary."""
        return cls(
            name=data["name"],
            base_url=data["base_url"].rstrip("/"),
            enabled=data.get("enabled", True),
            description=data.get("description", ""),
        )


DEFAULT_PROVIDERS: tuple[ProviderConfig, ...] = (
    ProviderConfig("anilist", "https://graphql.anilist.co", description="GraphQL metadata API"),
    ProviderConfig("anify", "https://anify.eltik.cc", description="Specialized info API"),
    ProviderConfig("malsync", "https://api.malsync.moe", description="Cross-reference mapping"),
    ProviderConfig("anizip", "https://api.ani.zip", description="Episode metadata and mappings"),
    ProviderConfig("gogoanime", "https://api.consumet.org", description="Scraping provider"),
    ProviderConfig("zoro", "https://api.consumet.org", description="Scraping provider"),
)


@dataclass
class CrawlConfig:
    """Settings for the resumable crawl sweep."""

    id_list_url: str = DEFAULT_ID_LIST_URL
    checkpoint_path: str = "last_crawled_id.txt"
    checkpoint_backend: str = "file"  # "file" or "redis"
    delay_seconds: float = 2.0
    gate_policy: GatePolicy = GatePolicy.LEGACY

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> CrawlConfig:
        """Create from dictionary."""
        if data is None:
            return cls()
        backend = data.get("checkpoint_backend", "file")
        if backend not in ("file", "redis"):
            raise ValueError(f"Unknown checkpoint backend: {backend}")
        return cls(
            id_list_url=data.get("id_list_url", DEFAULT_ID_LIST_URL),
            checkpoint_path=data.get("checkpoint_path", "last_crawled_id.txt"),
            checkpoint_backend=backend,
            delay_seconds=float(data.get("delay_seconds", 2.0)),
            gate_policy=GatePolicy(data.get("gate_policy", GatePolicy.LEGACY.value)),
        )


@dataclass
class CacheConfig:
    """Cache key prefix and TTLs (seconds)."""

    prefix: str = "ani:"
    temporary_ttl: int = TEMPORARY_TTL_SECONDS
    permanent_ttl: int = PERMANENT_TTL_SECONDS

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> CacheConfig:
        """Create from dictionary."""
        if data is None:
            return cls()
        return cls(
            prefix=data.get("prefix", "ani:"),
            temporary_ttl=int(data.get("temporary_ttl", TEMPORARY_TTL_SECONDS)),
            permanent_ttl=int(data.get("permanent_ttl", PERMANENT_TTL_SECONDS)),
        )


@dataclass
class GlobalConfig:
    """Global configuration settings."""

    user_agent: str = DEFAULT_USER_AGENT
    request_timeout: float = 30.0
    retry: RetryConfig = field(default_factory=RetryConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> GlobalConfig:
        """Create from dictionary."""
        if data is None:
            return cls()
        return cls(
            user_agent=data.get("user_agent", DEFAULT_USER_AGENT),
            request_timeout=float(data.get("request_timeout", 30.0)),
            retry=RetryConfig.from_dict(data.get("retry")),
        )


class ProviderRegistry:
    """
    Registry for provider and crawl configuration.

    Starts out with the built-in provider endpoints; `load_config`
    replaces them with the contents of a YAML file.
    """

    def __init__(self) -> None:
        self._providers: dict[str, ProviderConfig] = {
            p.name: ProviderConfig(p.name, p.base_url, p.enabled, p.description)
            for p in DEFAULT_PROVIDERS
        }
        self._global_config = GlobalConfig()
        self._crawl = CrawlConfig()
        self._cache = CacheConfig()
        self._config_path: Path | None = None

    @property
    def global_config(self) -> GlobalConfig:
        """Get global configuration."""
        return self._global_config

    @property
    def crawl(self) -> CrawlConfig:
        """Get crawl configuration."""
        return self._crawl

    @property
    def cache(self) -> CacheConfig:
        """Get cache configuration."""
        return self._cache

    @property
    def config_path(self) -> Path | None:
        """Path of the loaded YAML file, if any."""
        return self._config_path

    def load_config(self, config_path: Path | str) -> None:
        """
        Load configuration from a YAML file.

        Providers missing from the file keep their built-in endpoints.

        Args:
            config_path: Path to the anisync.yaml file
        """
        config_path = Path(config_path).expanduser().resolve()
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        self._config_path = config_path
        self._global_config = GlobalConfig.from_dict(data.get("global"))
        self._crawl = CrawlConfig.from_dict(data.get("crawl"))
        self._cache = CacheConfig.from_dict(data.get("cache"))

        for provider_data in data.get("providers", []):
            provider = ProviderConfig.from_dict(provider_data)
            self._providers[provider.name] = provider

    def get_provider(self, name: str) -> ProviderConfig | None:
        """
        Get a provider configuration by name.

        Args:
            name: Provider name

        Returns:
            ProviderConfig if found, None otherwise
        """
        return self._providers.get(name)

    def list_providers(self) -> list[ProviderConfig]:
        """Get all registered providers."""
        return list(self._providers.values())

    def is_enabled(self, name: str) -> bool:
        """Check whether a provider is registered and enabled."""
        provider = self._providers.get(name)
        return provider is not None and provider.enabled


# Global registry instance
_default_registry: ProviderRegistry | None = None


def get_default_registry() -> ProviderRegistry:
    """
    Get the default provider registry instance.

    Loads configuration from the path specified in ANISYNC_CONFIG_PATH
    environment variable, or falls back to config/anisync.yaml.

    Returns:
        The global ProviderRegistry instance
    """
    global _default_registry

    if _default_registry is None:
        _default_registry = ProviderRegistry()

        config_path = os.environ.get("ANISYNC_CONFIG_PATH")
        if config_path:
            path = Path(config_path)
        else:
            project_root = Path(__file__).parent.parent.parent
            path = project_root / "config" / "anisync.yaml"

        if path.exists():
            _default_registry.load_config(path)

    return _default_registry


def reset_default_registry() -> None:
    """Reset the default registry (useful for testing)."""
    global _default_registry
    _default_registry = None

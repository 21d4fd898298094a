"""
Adapter Base Module
===================

Defines the abstract base class for provider adapters and the
result-or-empty value every fan-out fetch resolves to.

Adapters are responsible for:
1. Calling one upstream provider through the resilient client
2. Normalizing its response into a partial entity
"""

from __future__ import annotations

import logging
from abc import ABC
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from anisync.ingestion.registry import ProviderConfig
    from anisync.ingestion.request import ResilientClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ProviderResult(Generic[T]):
    """
    Outcome of one provider fetch.

    Either carries a value, or is empty. An empty result may carry the
    error that made it empty; a provider that was never called (no native
    id resolved) is empty without an error.
    """

    provider: str
    value: T | None = None
    error: str | None = None

    @property
    def is_empty(self) -> bool:
        """Check if the fetch produced no data."""
        return self.value is None

    @property
    def failed(self) -> bool:
        """Check if the fetch raised."""
        return self.error is not None

    @classmethod
    def empty(cls, provider: str, error: str | None = None) -> ProviderResult[T]:
        return cls(provider=provider, value=None, error=error)


async def capture(provider: str, fetch: Awaitable[T | None]) -> ProviderResult[T]:
    """
    Await a provider fetch, turning any exception into an empty result.

    Args:
        provider: Provider name, recorded on the result
        fetch: Awaitable returning the partial entity (or None)

    Returns:
        ProviderResult with the value, or empty with the error message
    """
    try:
        value = await fetch
    except Exception as e:
        logger.warning("Provider '%s' fetch failed: %s", provider, e)
        return ProviderResult.empty(provider, error=f"{type(e).__name__}: {e}")
    return ProviderResult(provider=provider, value=value)


class BaseAdapter(ABC):
    """
    Abstract base class for provider adapters.

    Subclasses set ADAPTER_NAME and implement an async `fetch` method
    whose arguments depend on the provider.
    """

    # Adapter identification (override in subclasses)
    ADAPTER_NAME: str = "base"
    ADAPTER_VERSION: str = "1.0.0"

    def __init__(self, client: ResilientClient, config: ProviderConfig) -> None:
        """
        Initialize the adapter.

        Args:
            client: Shared resilient HTTP client
            config: Provider endpoint configuration
        """
        self.client = client
        self.config = config

    @property
    def base_url(self) -> str:
        return self.config.base_url

    def get_info(self) -> dict[str, str]:
        """Get adapter information."""
        return {
            "name": self.ADAPTER_NAME,
            "version": self.ADAPTER_VERSION,
            "class": self.__class__.__name__,
            "base_url": self.base_url,
        }


def snake_case(name: str) -> str:
    """Convert a camelCase key to snake_case."""
    chars: list[str] = []
    for i, ch in enumerate(name):
        if ch.isupper() and i > 0 and not name[i - 1].isupper():
            chars.append("_")
        chars.append(ch.lower())
    return "".join(chars)


def snake_keys(data: Any) -> Any:
    """Recursively convert dict keys from camelCase to snake_case."""
    if isinstance(data, dict):
        return {snake_case(k): snake_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [snake_keys(v) for v in data]
    return data

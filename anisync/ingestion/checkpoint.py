"""
Checkpoint Storage Module
=========================

Persists the crawl checkpoint: the id of the last anime that was fully
processed and stored. The value is the plain textual id, with no
delimiter or structure, read back verbatim.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from anisync.ingestion.registry import CrawlConfig

DEFAULT_CHECKPOINT_FILE = "last_crawled_id.txt"
DEFAULT_CHECKPOINT_KEY = "anisync:last_crawled_id"


class CheckpointError(Exception):
    """Raised when the checkpoint cannot be read or written."""


class CheckpointStore(ABC):
    """
    Abstract base class for checkpoint storage.

    Implementations hold a single text value under a fixed key.
    """

    @abstractmethod
    async def read(self) -> str | None:
        """
        Read the checkpoint.

        Returns:
            The last processed id, or None if no checkpoint exists

        Raises:
            CheckpointError: the store is unreadable
        """

    @abstractmethod
    async def write(self, anime_id: str) -> None:
        """
        Replace the checkpoint.

        Args:
            anime_id: Id that has just been fully processed

        Raises:
            CheckpointError: the value could not be persisted
        """

    @abstractmethod
    async def clear(self) -> bool:
        """
        Remove the checkpoint so the next run starts fresh.

        Returns:
            True if a checkpoint existed
        """

    @property
    @abstractmethod
    def location(self) -> str:
        """Human readable description of where the checkpoint lives."""


class FileCheckpointStore(CheckpointStore):
    """Checkpoint kept in a text file."""

    def __init__(self, path: str | Path = DEFAULT_CHECKPOINT_FILE) -> None:
        self.path = Path(path).expanduser()

    @property
    def location(self) -> str:
        return str(self.path)

    async def read(self) -> str | None:
        try:
            value = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CheckpointError(f"Cannot read checkpoint {self.path}: {e}") from e
        return value or None

    async def write(self, anime_id: str) -> None:
        # Write then rename, so a crash never leaves a half-written id
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(str(anime_id), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise CheckpointError(f"Cannot write checkpoint {self.path}: {e}") from e

    async def clear(self) -> bool:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise CheckpointError(f"Cannot remove checkpoint {self.path}: {e}") from e
        return True


class RedisCheckpointStore(CheckpointStore):
    """Checkpoint kept in a Redis key."""

    def __init__(self, redis: Any, key: str = DEFAULT_CHECKPOINT_KEY) -> None:
        """
        Args:
            redis: A redis.asyncio.Redis client (decode_responses=True)
            key: Key holding the checkpoint
        """
        self.redis = redis
        self.key = key

    @property
    def location(self) -> str:
        return f"redis key {self.key}"

    async def read(self) -> str | None:
        try:
            value = await self.redis.get(self.key)
        except Exception as e:
            raise CheckpointError(f"Cannot read checkpoint {self.key}: {e}") from e
        if value is None:
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value.strip() or None

    async def write(self, anime_id: str) -> None:
        try:
            await self.redis.set(self.key, str(anime_id))
        except Exception as e:
            raise CheckpointError(f"Cannot write checkpoint {self.key}: {e}") from e

    async def clear(self) -> bool:
        try:
            return bool(await self.redis.delete(self.key))
        except Exception as e:
            raise CheckpointError(f"Cannot remove checkpoint {self.key}: {e}") from e


def get_checkpoint_store(config: CrawlConfig, redis: Any | None = None) -> CheckpointStore:
    """
    Build the checkpoint store selected by the crawl configuration.

    The file path can be overridden with CHECKPOINT_PATH.
    """
    if config.checkpoint_backend == "redis":
        if redis is None:
            raise CheckpointError("Redis checkpoint backend selected but no Redis client given")
        return RedisCheckpointStore(redis)
    return FileCheckpointStore(os.environ.get("CHECKPOINT_PATH", config.checkpoint_path))

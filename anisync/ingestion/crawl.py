"""
Crawl Controller Module
=======================

Drives a checkpointed, rate-limited, sequential sweep over the remote
list of anime ids. Each id is reconciled, gated, stored, and only then
recorded as the checkpoint.

A run moves through these states:

    IDLE -> RESUMING -> PROCESSING -> COMPLETED
                    \\-> ABORTED

Only an unavailable id list or a checkpoint failure aborts the run. Any
other failure is confined to the id that caused it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from anisync.core.policies import GatePolicy, is_storable
from anisync.ingestion.checkpoint import CheckpointError

if TYPE_CHECKING:
    from anisync.core.schema import CanonicalAnime
    from anisync.ingestion.checkpoint import CheckpointStore
    from anisync.ingestion.request import ResilientClient
    from anisync.ingestion.resolver import Reconciler


class IdListUnavailableError(Exception):
    """Raised when the id list cannot be fetched."""


class CrawlState(str, Enum):
    """State of a crawl run."""

    IDLE = "idle"
    RESUMING = "resuming"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ABORTED = "aborted"


class ItemOutcome(str, Enum):
    """What happened to a single id."""

    SAVED = "saved"
    SKIPPED = "skipped"
    FAILED = "failed"


class IdSource(Protocol):
    async def fetch(self) -> list[str]: ...


class AnimeStore(Protocol):
    def insert(self, anime: CanonicalAnime) -> Any: ...


@dataclass
class CrawlResult:
    """Summary of a crawl run."""

    state: CrawlState = CrawlState.IDLE
    total_ids: int = 0
    start_index: int = 0
    saved: int = 0
    skipped: int = 0
    failed: int = 0
    last_checkpoint: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.saved + self.skipped + self.failed

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def record(self, outcome: ItemOutcome) -> None:
        if outcome == ItemOutcome.SAVED:
            self.saved += 1
        elif outcome == ItemOutcome.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "state": self.state.value,
            "total_ids": self.total_ids,
            "start_index": self.start_index,
            "processed": self.processed,
            "saved": self.saved,
            "skipped": self.skipped,
            "failed": self.failed,
            "last_checkpoint": self.last_checkpoint,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "errors": self.errors,
        }


def parse_id_list(text: str) -> list[str]:
    """Split a newline-delimited id list, ignoring blank lines."""
    return [line.strip() for line in text.splitlines() if line.strip()]


class RemoteIdList:
    """The remote plaintext id list, fetched fresh on every run."""

    def __init__(self, client: ResilientClient, url: str) -> None:
        self.client = client
        self.url = url

    async def fetch(self) -> list[str]:
        """
        Fetch the ordered id list.

        Raises:
            IdListUnavailableError: the list could not be fetched
        """
        try:
            response = await self.client.get(self.url)
        except httpx.HTTPError as e:
            raise IdListUnavailableError(f"Cannot fetch id list {self.url}: {e}") from e
        return parse_id_list(response.text)


class CrawlController:
    """
    Sequential, resumable crawl over an ordered id list.

    Ids are processed one at a time in list order. Between two ids,
    whatever the outcome of the first, the controller sleeps for
    `delay_seconds`.
    """

    def __init__(
        self,
        reconciler: Reconciler,
        store: AnimeStore,
        checkpoint: CheckpointStore,
        id_source: IdSource,
        *,
        delay_seconds: float = 2.0,
        gate_policy: GatePolicy = GatePolicy.LEGACY,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the controller.

        Args:
            reconciler: Produces canonical records per id
            store: Durable store with an `insert(anime)` method
            checkpoint: Where the last processed id is kept
            id_source: Provides the ordered id list
            delay_seconds: Pause between two ids
            gate_policy: Status clause of the minimum-viable-record gate
            logger: Logger for this component
            sleep: Coroutine function used to pause
        """
        self.reconciler = reconciler
        self.store = store
        self.checkpoint = checkpoint
        self.id_source = id_source
        self.delay_seconds = delay_seconds
        self.gate_policy = gate_policy
        self.logger = logger or logging.getLogger(__name__)
        self.sleep = sleep
        self.state = CrawlState.IDLE

    async def resume_index(self, ids: list[str]) -> int:
        """
        Find where this run starts.

        Returns the position right after the checkpoint, or 0 when there
        is no checkpoint or it no longer appears in the list.

        Raises:
            CheckpointError: the checkpoint store is unreadable
        """
        last_id = await self.checkpoint.read()
        if last_id is None:
            self.logger.info("No checkpoint found, starting from the beginning")
            return 0
        try:
            index = ids.index(last_id) + 1
        except ValueError:
            self.logger.warning(
                "Checkpoint %s not found in id list, starting from the beginning", last_id
            )
            return 0
        self.logger.info("Resuming after %s (position %d of %d)", last_id, index, len(ids))
        return index

    async def process(self, anime_id: str) -> ItemOutcome:
        """
        Reconcile, gate and store one id.

        Only a saved id advances the checkpoint. A checkpoint write
        failure is raised; every other failure yields FAILED.

        Raises:
            CheckpointError: the checkpoint could not be written
        """
        try:
            anime = await self.reconciler.reconcile(anime_id)
            if anime is None:
                self.logger.warning("No data for anime %s, skipping", anime_id)
                return ItemOutcome.SKIPPED
            if not is_storable(anime, self.gate_policy):
                self.logger.warning("Incomplete data for anime %s, skipping", anime_id)
                return ItemOutcome.SKIPPED
            self.store.insert(anime)
        except Exception:
            self.logger.exception("Error processing anime %s", anime_id)
            return ItemOutcome.FAILED

        await self.checkpoint.write(anime_id)
        self.logger.info("Saved anime %s", anime_id)
        return ItemOutcome.SAVED

    async def run(self) -> CrawlResult:
        """
        Run one sweep.

        Returns:
            CrawlResult ending in COMPLETED or ABORTED
        """
        result = CrawlResult(started_at=datetime.now(UTC))
        try:
            self.state = CrawlState.RESUMING
            ids = await self.id_source.fetch()
            result.total_ids = len(ids)
            result.start_index = await self.resume_index(ids)
            result.last_checkpoint = ids[result.start_index - 1] if result.start_index else None

            self.state = CrawlState.PROCESSING
            remaining = ids[result.start_index :]
            self.logger.info("Crawling %d of %d ids", len(remaining), len(ids))
            for position, anime_id in enumerate(remaining):
                outcome = await self.process(anime_id)
                result.record(outcome)
                if outcome == ItemOutcome.SAVED:
                    result.last_checkpoint = anime_id
                elif outcome == ItemOutcome.FAILED:
                    result.errors.append(f"{anime_id}: processing failed")
                if position < len(remaining) - 1:
                    await self.sleep(self.delay_seconds)

            self.state = CrawlState.COMPLETED
            self.logger.info(
                "Crawl completed: %d saved, %d skipped, %d failed",
                result.saved,
                result.skipped,
                result.failed,
            )
        except (IdListUnavailableError, CheckpointError) as e:
            self.state = CrawlState.ABORTED
            result.errors.append(str(e))
            self.logger.error("Crawl aborted: %s", e)
        finally:
            result.state = self.state
            result.completed_at = datetime.now(UTC)

        return result

"""
Anisync Ingestion Framework
===========================

This package fetches anime data from several third-party providers and
reconciles it into one canonical record per anime id.

Pipeline Stages:
1. Request - Resilient client retries rate-limited and failing calls
2. Fetch - Provider adapters normalize each provider's response
3. Reconcile - Partial records are merged by precedence into one record
4. Crawl - A resumable sweep stores every complete record and advances
   the checkpoint
"""

from anisync.ingestion.checkpoint import (
    CheckpointError,
    CheckpointStore,
    FileCheckpointStore,
    RedisCheckpointStore,
    get_checkpoint_store,
)
from anisync.ingestion.crawl import (
    CrawlController,
    CrawlResult,
    CrawlState,
    IdListUnavailableError,
    ItemOutcome,
    RemoteIdList,
)
from anisync.ingestion.jobs import (
    crawl_job,
    enqueue_crawl,
    get_job_status,
    run_crawl,
)
from anisync.ingestion.registry import (
    CrawlConfig,
    ProviderConfig,
    ProviderRegistry,
    RetryConfig,
    get_default_registry,
)
from anisync.ingestion.request import ResilientClient
from anisync.ingestion.resolver import Reconciler

__all__ = [
    # Registry
    "ProviderRegistry",
    "ProviderConfig",
    "RetryConfig",
    "CrawlConfig",
    "get_default_registry",
    # Request
    "ResilientClient",
    # Reconciliation
    "Reconciler",
    # Checkpoint
    "CheckpointError",
    "CheckpointStore",
    "FileCheckpointStore",
    "RedisCheckpointStore",
    "get_checkpoint_store",
    # Crawl
    "CrawlController",
    "CrawlResult",
    "CrawlState",
    "IdListUnavailableError",
    "ItemOutcome",
    "RemoteIdList",
    # Jobs
    "crawl_job",
    "enqueue_crawl",
    "get_job_status",
    "run_crawl",
]

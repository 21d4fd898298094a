"""
Background Jobs Module
======================

Defines arq tasks for running the crawl outside the CLI, plus the
nightly cron schedule that re-invokes it. Uses Redis as the job queue
backend.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from arq import create_pool, cron
from arq.connections import RedisSettings
from arq.jobs import Job, JobStatus

from anisync.db.engine import get_session, init_db
from anisync.db.repositories import AnimeRepository
from anisync.ingestion.checkpoint import get_checkpoint_store
from anisync.ingestion.crawl import CrawlController, CrawlResult, RemoteIdList
from anisync.ingestion.registry import ProviderRegistry, get_default_registry
from anisync.ingestion.request import ResilientClient
from anisync.ingestion.resolver import Reconciler

logger = logging.getLogger(__name__)


def get_redis_settings() -> RedisSettings:
    """Get Redis connection settings from environment."""
    return RedisSettings(
        host=os.environ.get("REDIS_HOST", "localhost"),
        port=int(os.environ.get("REDIS_PORT", "6379")),
        database=int(os.environ.get("REDIS_DB", "0")),
        password=os.environ.get("REDIS_PASSWORD") or None,
    )


async def run_crawl(
    registry: ProviderRegistry | None = None,
    *,
    redis: Any | None = None,
    crawl_logger: logging.Logger | None = None,
) -> CrawlResult:
    """
    Run one crawl sweep with components built from configuration.

    Args:
        registry: Configuration registry (default registry if None)
        redis: Redis client, required by the redis checkpoint backend
        crawl_logger: Logger handed to every component

    Returns:
        CrawlResult of the sweep
    """
    registry = registry or get_default_registry()
    crawl_config = registry.crawl
    component_logger = crawl_logger or logger

    init_db()
    async with ResilientClient.from_config(
        registry.global_config, logger=component_logger
    ) as client:
        with get_session() as session:
            controller = CrawlController(
                reconciler=Reconciler.from_registry(client, registry, logger=component_logger),
                store=AnimeRepository(session),
                checkpoint=get_checkpoint_store(crawl_config, redis=redis),
                id_source=RemoteIdList(client, crawl_config.id_list_url),
                delay_seconds=crawl_config.delay_seconds,
                gate_policy=crawl_config.gate_policy,
                logger=component_logger,
            )
            return await controller.run()


async def crawl_job(ctx: dict[str, Any]) -> dict[str, Any]:
    """
    arq task running one crawl sweep.

    Args:
        ctx: arq context (contains Redis connection)

    Returns:
        CrawlResult as dictionary
    """
    logger.info("Starting crawl job %s", ctx.get("job_id"))
    result = await run_crawl(redis=ctx.get("redis"))
    return result.to_dict()


async def enqueue_crawl() -> str:
    """
    Enqueue a crawl job for async processing.

    Returns:
        Job ID
    """
    redis = await create_pool(get_redis_settings())
    job = await redis.enqueue_job("crawl_job")
    await redis.close()
    return job.job_id


async def get_job_status(job_id: str) -> dict[str, Any] | None:
    """
    Get the status of a crawl job.

    Args:
        job_id: Job ID to look up

    Returns:
        Job info dict, or None if not found
    """
    redis = await create_pool(get_redis_settings())
    try:
        job = Job(job_id, redis)
        status = await job.status()
        if status == JobStatus.not_found:
            return None
        info = await job.result_info()
    finally:
        await redis.close()

    return {
        "job_id": job_id,
        "status": status.value,
        "result": info.result if info else None,
    }


class WorkerSettings:
    """arq worker settings."""

    functions = [crawl_job]
    cron_jobs = [cron(crawl_job, hour={3}, minute={0}, unique=True)]
    redis_settings = get_redis_settings()
    max_jobs = 1
    job_timeout = 24 * 3600  # a full sweep over every id
    keep_result = 86400  # 24 hours

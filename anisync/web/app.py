"""FastAPI application factory for anisync."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from anisync.db.engine import init_db
from anisync.ingestion.registry import get_default_registry
from anisync.ingestion.request import ResilientClient
from anisync.ingestion.resolver import Reconciler
from anisync.services.cache_service import create_redis_client

# Load .env file from project root
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the shared Redis and HTTP clients for the app's lifetime."""
    init_db()
    registry = get_default_registry()
    app.state.registry = registry
    app.state.redis = create_redis_client()
    app.state.http_client = ResilientClient.from_config(registry.global_config)
    app.state.reconciler = Reconciler.from_registry(app.state.http_client, registry)
    logger.info("Server started")
    try:
        yield
    finally:
        await app.state.http_client.aclose()
        await app.state.redis.aclose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Anisync",
        description="Reconciled anime metadata from several providers",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    # Include routers (import here to avoid circular imports)
    from anisync.web.routes import anime

    app.include_router(anime.router)

    return app


# Application instance
app = create_app()

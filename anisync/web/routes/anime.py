"""Anime routes: API status, record lookup and the guarded delete-all."""

import hmac
import logging

from fastapi import APIRouter, HTTPException

from anisync.web.dependencies import AnimeServiceDep, SecretKeyDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["anime"])


@router.get("/")
async def index(service: AnimeServiceDep) -> dict:
    """API status and the number of stored anime."""
    return {"message": "API is working.", "total_anime": service.count()}


@router.get("/info/")
async def info_without_id() -> dict:
    raise HTTPException(status_code=400, detail="No ID provided.")


@router.get("/info/{anime_id}")
async def info(anime_id: str, service: AnimeServiceDep) -> dict:
    """
    Canonical record of one anime.

    Served from the cache or the store when possible, otherwise
    reconciled live from the providers.
    """
    anime_id = anime_id.strip()
    if not anime_id:
        raise HTTPException(status_code=400, detail="No ID provided.")

    try:
        document = await service.get_info(anime_id)
    except Exception as e:
        logger.exception(f"An error occurred on server with {anime_id}")
        raise HTTPException(status_code=500, detail=str(e)) from e

    if document is None:
        raise HTTPException(status_code=404, detail="Anime not found.")
    return document


@router.get("/delete_all")
async def delete_all(
    service: AnimeServiceDep,
    secret_key: SecretKeyDep,
    secret: str | None = None,
) -> dict:
    """Delete every stored anime. Requires the shared secret."""
    if not secret:
        raise HTTPException(status_code=400, detail="No secret provided.")
    if secret_key is None or not hmac.compare_digest(secret.encode(), secret_key.encode()):
        raise HTTPException(status_code=401, detail="Invalid secret.")

    deleted = await service.delete_all()
    return {"message": "All anime deleted.", "deleted": deleted}

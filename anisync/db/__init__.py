"""Database initialization and persistence layer."""

from anisync.db.engine import (
    create_db_engine,
    get_database_url,
    get_engine,
    get_session,
    get_session_factory,
    init_db,
    reset_engine,
)
from anisync.db.models import AnimeDB, Base
from anisync.db.repositories import AnimeRepository, DuplicateAnimeError

__all__ = [
    # Engine
    "create_db_engine",
    "get_database_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_db",
    "reset_engine",
    # Models
    "Base",
    "AnimeDB",
    # Repositories
    "AnimeRepository",
    "DuplicateAnimeError",
]

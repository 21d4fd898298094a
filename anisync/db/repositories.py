"""Repository classes for anime database operations."""

import json

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from anisync.core.schema import CanonicalAnime
from anisync.db.models import AnimeDB


class DuplicateAnimeError(Exception):
    """Raised when inserting an anime whose id is already stored."""


class AnimeRepository:
    """Repository for canonical anime records."""

    def __init__(self, session: Session):
        self.session = session

    def insert(self, anime: CanonicalAnime) -> CanonicalAnime:
        """
        Store a new anime and commit.

        Raises:
            DuplicateAnimeError: an anime with the same id exists
        """
        title = anime.title.english or anime.title.romaji or anime.title.native or ""
        db_item = AnimeDB(
            id=anime.id,
            title=title,
            status=anime.status,
            id_mal=anime.id_mal,
            document_json=json.dumps(anime.to_document()),
        )
        self.session.add(db_item)
        try:
            self._commit()
        except IntegrityError as e:
            raise DuplicateAnimeError(f"Anime {anime.id} already exists") from e
        return anime

    def _commit(self) -> None:
        """Commit, rolling back on any failure so the session stays usable."""
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def get(self, anime_id: str) -> CanonicalAnime | None:
        """Get an anime by id."""
        stmt = select(AnimeDB).where(AnimeDB.id == str(anime_id))
        db_item = self.session.execute(stmt).scalar_one_or_none()
        return self._to_domain(db_item) if db_item else None

    def get_document(self, anime_id: str) -> dict | None:
        """Get the stored document of an anime, keys in stored order."""
        stmt = select(AnimeDB.document_json).where(AnimeDB.id == str(anime_id))
        document_json = self.session.execute(stmt).scalar_one_or_none()
        return json.loads(document_json) if document_json else None

    def get_all(self) -> list[CanonicalAnime]:
        """Get every stored anime."""
        stmt = select(AnimeDB).order_by(AnimeDB.created_at)
        result = self.session.execute(stmt).scalars().all()
        return [self._to_domain(a) for a in result]

    def count(self) -> int:
        """Get total count of stored anime."""
        stmt = select(func.count()).select_from(AnimeDB)
        return self.session.execute(stmt).scalar() or 0

    def exists(self, anime_id: str) -> bool:
        stmt = select(AnimeDB.id).where(AnimeDB.id == str(anime_id))
        return self.session.execute(stmt).first() is not None

    def delete_one(self, anime_id: str) -> bool:
        """Delete an anime by id. Returns True if it existed."""
        return self._delete(delete(AnimeDB).where(AnimeDB.id == str(anime_id))) > 0

    def delete_all(self) -> int:
        """Delete every anime. Returns the number of deleted records."""
        return self._delete(delete(AnimeDB))

    def _delete(self, stmt) -> int:
        try:
            result = self.session.execute(stmt)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return result.rowcount

    def _to_domain(self, db_item: AnimeDB) -> CanonicalAnime:
        """Convert database model to domain model."""
        return CanonicalAnime.from_document(json.loads(db_item.document_json))

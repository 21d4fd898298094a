"""SQLAlchemy ORM models for the anisync database."""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class AnimeDB(Base):
    """
    Database model for canonical anime records.

    Stores a few key fields as columns for indexing, and the full
    reconciled record as a JSON document.
    """

    __tablename__ = "anime"

    # AniList id as text; uniqueness is enforced by the primary key
    id: Mapped[str] = mapped_column(String(32), primary_key=True)

    # Key indexed fields
    title: Mapped[str] = mapped_column(String(500), default="", index=True)
    status: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    id_mal: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    # Full record, keys in stored order
    document_json: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now, onupdate=_utc_now)

    def __repr__(self) -> str:
        return f"<AnimeDB(id={self.id}, title='{self.title}', status={self.status})>"

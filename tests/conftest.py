"""Shared pytest fixtures."""

import fnmatch
import sqlite3
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from anisync.db.models import Base


class FakeRedis:
    """In-memory stand-in for the subset of redis.asyncio used here."""

    def __init__(self, fail: bool = False) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.fail = fail

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("redis unavailable")

    async def get(self, key: str) -> str | None:
        self._check()
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self._check()
        self.data[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                self.ttls.pop(key, None)
                removed += 1
        return removed

    async def scan_iter(self, match: str = "*"):
        self._check()
        for key in list(self.data):
            if fnmatch.fnmatch(key, match):
                yield key

    async def aclose(self) -> None:
        return None


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
def engine(temp_db_path: Path):
    """Create a test database engine."""
    engine = create_engine(
        f"sqlite:///{temp_db_path}", echo=False, connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def failing_redis() -> FakeRedis:
    return FakeRedis(fail=True)


@pytest.fixture
def failing_inserts(engine):
    """Call with N to make the next N INSERT statements fail like a locked database."""

    def arm(count: int = 1) -> None:
        remaining = [count]

        def fail_insert(conn, cursor, statement, parameters, context, executemany):
            if remaining[0] > 0 and statement.lstrip().upper().startswith("INSERT"):
                remaining[0] -= 1
                raise sqlite3.OperationalError("database is locked")

        event.listen(engine, "before_cursor_execute", fail_insert)

    return arm

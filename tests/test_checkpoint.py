"""Tests for crawl checkpoint storage."""

from pathlib import Path

import pytest

from anisync.ingestion.checkpoint import (
    DEFAULT_CHECKPOINT_KEY,
    CheckpointError,
    FileCheckpointStore,
    RedisCheckpointStore,
    get_checkpoint_store,
)
from anisync.ingestion.registry import CrawlConfig


class TestFileCheckpointStore:
    """Tests for the file-backed checkpoint."""

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path: Path) -> None:
        """No file means no checkpoint."""
        store = FileCheckpointStore(tmp_path / "last_crawled_id.txt")
        assert await store.read() is None

    @pytest.mark.asyncio
    async def test_write_then_read(self, tmp_path: Path) -> None:
        """The id is stored as plain text and read back verbatim."""
        path = tmp_path / "last_crawled_id.txt"
        store = FileCheckpointStore(path)
        await store.write("16498")
        assert path.read_text() == "16498"
        assert await store.read() == "16498"

    @pytest.mark.asyncio
    async def test_overwrite(self, tmp_path: Path) -> None:
        """Each write replaces the previous value."""
        store = FileCheckpointStore(tmp_path / "cp.txt")
        await store.write("1")
        await store.write("2")
        assert await store.read() == "2"
        assert not (tmp_path / "cp.txt.tmp").exists()

    @pytest.mark.asyncio
    async def test_whitespace_and_empty(self, tmp_path: Path) -> None:
        """Trailing newlines are ignored and an empty file is no checkpoint."""
        path = tmp_path / "cp.txt"
        path.write_text("21\n")
        store = FileCheckpointStore(path)
        assert await store.read() == "21"
        path.write_text("")
        assert await store.read() is None

    @pytest.mark.asyncio
    async def test_clear(self, tmp_path: Path) -> None:
        """Clearing removes the file once."""
        store = FileCheckpointStore(tmp_path / "cp.txt")
        await store.write("1")
        assert await store.clear() is True
        assert await store.clear() is False
        assert await store.read() is None

    @pytest.mark.asyncio
    async def test_unwritable_location(self, tmp_path: Path) -> None:
        """A write that cannot succeed raises CheckpointError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        store = FileCheckpointStore(blocker / "cp.txt")
        with pytest.raises(CheckpointError):
            await store.write("1")

    @pytest.mark.asyncio
    async def test_unreadable_location(self, tmp_path: Path) -> None:
        """A path that is a directory cannot be read."""
        store = FileCheckpointStore(tmp_path)
        with pytest.raises(CheckpointError):
            await store.read()


class TestRedisCheckpointStore:
    """Tests for the Redis-backed checkpoint."""

    @pytest.mark.asyncio
    async def test_round_trip(self, fake_redis) -> None:
        """The id is kept under the fixed key."""
        store = RedisCheckpointStore(fake_redis)
        assert await store.read() is None
        await store.write("21")
        assert fake_redis.data[DEFAULT_CHECKPOINT_KEY] == "21"
        assert await store.read() == "21"

    @pytest.mark.asyncio
    async def test_bytes_value(self, fake_redis) -> None:
        """Clients without decode_responses return bytes."""
        fake_redis.data[DEFAULT_CHECKPOINT_KEY] = b"42"
        assert await RedisCheckpointStore(fake_redis).read() == "42"

    @pytest.mark.asyncio
    async def test_failure(self, failing_redis) -> None:
        """Redis errors become CheckpointError."""
        store = RedisCheckpointStore(failing_redis)
        with pytest.raises(CheckpointError):
            await store.read()
        with pytest.raises(CheckpointError):
            await store.write("1")


class TestGetCheckpointStore:
    """Tests for picking the checkpoint backend."""

    def test_file_backend(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """The file path comes from the configuration."""
        monkeypatch.delenv("CHECKPOINT_PATH", raising=False)
        store = get_checkpoint_store(CrawlConfig(checkpoint_path=str(tmp_path / "cp.txt")))
        assert isinstance(store, FileCheckpointStore)
        assert store.location == str(tmp_path / "cp.txt")

    def test_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """CHECKPOINT_PATH overrides the configured file."""
        monkeypatch.setenv("CHECKPOINT_PATH", str(tmp_path / "other.txt"))
        store = get_checkpoint_store(CrawlConfig())
        assert store.location == str(tmp_path / "other.txt")

    def test_redis_backend(self, fake_redis) -> None:
        """The redis backend uses the given client."""
        store = get_checkpoint_store(CrawlConfig(checkpoint_backend="redis"), redis=fake_redis)
        assert isinstance(store, RedisCheckpointStore)

    def test_redis_backend_without_client(self) -> None:
        """The redis backend needs a client."""
        with pytest.raises(CheckpointError):
            get_checkpoint_store(CrawlConfig(checkpoint_backend="redis"))

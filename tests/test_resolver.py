"""Tests for the reconciliation engine."""

import httpx
import pytest

from anisync.core.schema import (
    CrossReference,
    CrossReferenceData,
    EpisodeMapping,
    MappedEpisode,
    MetadataInfo,
    ScrapedEpisode,
    ScrapedInfo,
    Title,
)
from anisync.ingestion.registry import ProviderRegistry, RetryConfig
from anisync.ingestion.request import ResilientClient
from anisync.ingestion.resolver import Reconciler


class FakeAdapter:
    """Adapter double returning a fixed value or raising."""

    def __init__(self, name: str, value=None, error: Exception | None = None) -> None:
        self.ADAPTER_NAME = name
        self.value = value
        self.error = error
        self.calls: list[str] = []

    async def fetch(self, key: str):
        self.calls.append(key)
        if self.error is not None:
            raise self.error
        return self.value


def metadata() -> MetadataInfo:
    return MetadataInfo(id="21", title=Title(romaji="One Piece"), status="RELEASING", genres=["Action"])


def mapping() -> EpisodeMapping:
    return EpisodeMapping(id="21", episodes=[MappedEpisode(title="Ep 1"), MappedEpisode(title="Ep 2")])


def scraped(count: int, genres=None) -> ScrapedInfo:
    return ScrapedInfo(
        genres=genres or [],
        episodes=[ScrapedEpisode(id=f"e{n}", number=n) for n in range(1, count + 1)],
    )


def cross_reference(*pairs: tuple[str, str]) -> list[CrossReference]:
    return [CrossReference(provider_id=p, data=CrossReferenceData(id=i)) for p, i in pairs]


def make_reconciler(meta=None, xref=None, zip_=None, gogo=None, zoro=None) -> Reconciler:
    return Reconciler(
        metadata=meta or FakeAdapter("anilist", metadata()),
        cross_reference=xref or FakeAdapter("malsync", []),
        episode_mapping=zip_ or FakeAdapter("anizip", mapping()),
        scrapers={
            "gogoanime": gogo or FakeAdapter("gogoanime", scraped(3)),
            "zoro": zoro or FakeAdapter("zoro", scraped(2)),
        },
    )


class TestReconciler:
    """Tests for fan-out, fan-in and merge."""

    @pytest.mark.asyncio
    async def test_native_ids_drive_scraper_calls(self) -> None:
        """Each scraper is called with its own native id."""
        gogo = FakeAdapter("gogoanime", scraped(3))
        zoro = FakeAdapter("zoro", scraped(2))
        reconciler = make_reconciler(
            xref=FakeAdapter("malsync", cross_reference(("gogoanime", "category/one-piece"), ("zoro", "one-piece-100"))),
            gogo=gogo,
            zoro=zoro,
        )

        anime = await reconciler.reconcile("21")

        assert gogo.calls == ["one-piece"]
        assert zoro.calls == ["one-piece-100"]
        assert [len(group.data) for group in anime.episodes] == [2, 2]
        assert anime.mappings["gogoanime"] == "one-piece"

    @pytest.mark.asyncio
    async def test_unresolved_provider_not_called(self) -> None:
        """No native id means no network call for that provider."""
        gogo = FakeAdapter("gogoanime", scraped(3))
        zoro = FakeAdapter("zoro", scraped(2))
        reconciler = make_reconciler(
            xref=FakeAdapter("malsync", cross_reference(("zoro", "one-piece-100"))),
            gogo=gogo,
            zoro=zoro,
        )

        anime = await reconciler.reconcile("21")

        assert gogo.calls == []
        assert [group.provider_id for group in anime.episodes] == ["zoro"]

    @pytest.mark.asyncio
    async def test_no_native_ids(self) -> None:
        """Metadata and mapping alone still give a record, without episodes."""
        anime = await make_reconciler().reconcile("21")
        assert anime is not None
        assert anime.title.romaji == "One Piece"
        assert anime.episodes == []

    @pytest.mark.asyncio
    async def test_provider_failure_is_isolated(self) -> None:
        """A failing provider only empties its own contribution."""
        reconciler = make_reconciler(
            xref=FakeAdapter("malsync", cross_reference(("gogoanime", "category/x"), ("zoro", "y"))),
            gogo=FakeAdapter("gogoanime", error=httpx.ConnectError("down")),
            zoro=FakeAdapter("zoro", scraped(2, genres=["Comedy"])),
        )

        anime = await reconciler.reconcile("21")

        assert anime.genres == ["Action", "Comedy"]
        assert [group.provider_id for group in anime.episodes] == ["zoro"]

    @pytest.mark.asyncio
    async def test_cross_reference_failure(self) -> None:
        """Without cross-references no scraper is called."""
        gogo = FakeAdapter("gogoanime", scraped(1))
        reconciler = make_reconciler(
            xref=FakeAdapter("malsync", error=RuntimeError("malsync down")),
            gogo=gogo,
        )

        bundle = await reconciler.gather("21")

        assert gogo.calls == []
        assert bundle.cross_reference.failed
        assert bundle.failures() == ["malsync: RuntimeError: malsync down"]

    @pytest.mark.asyncio
    async def test_metadata_and_mapping_keyed_by_input_id(self) -> None:
        """The unconditional services receive the original id."""
        meta = FakeAdapter("anilist", metadata())
        zip_ = FakeAdapter("anizip", mapping())
        await make_reconciler(meta=meta, zip_=zip_).reconcile("21")
        assert meta.calls == ["21"]
        assert zip_.calls == ["21"]

    @pytest.mark.asyncio
    async def test_unrecoverable_error_yields_none(self) -> None:
        """A broken merge yields no result instead of raising."""
        reconciler = make_reconciler(meta=FakeAdapter("anilist", "not a model"))
        assert await reconciler.reconcile("21") is None

    @pytest.mark.asyncio
    async def test_from_registry(self) -> None:
        """Adapters are built for every enabled provider."""
        registry = ProviderRegistry()
        registry.get_provider("gogoanime").enabled = False
        client = ResilientClient(RetryConfig(), transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        async with client:
            reconciler = Reconciler.from_registry(client, registry)
        assert list(reconciler.scrapers) == ["zoro"]
        assert reconciler.metadata.ADAPTER_NAME == "anilist"

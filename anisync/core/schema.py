"""Pydantic v2 models for anisync entities.

These models describe two families of records:
- Partial entities, one per provider, produced by the ingestion adapters
  (MetadataInfo, CrossReference, EpisodeMapping, ScrapedInfo)
- The canonical entity, the single reconciled record per anime id
  (CanonicalAnime with its Episode, ProviderEpisodes and Artwork parts)
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from anisync.core.ordering import sort_keys_by_value_length


# ============================================================================
# Shared Value Objects
# ============================================================================


class Title(BaseModel):
    """Title variants of an anime."""

    romaji: str | None = None
    english: str | None = None
    native: str | None = None

    def is_empty(self) -> bool:
        return not (self.romaji or self.english or self.native)


class FuzzyDate(BaseModel):
    """A date where any part may be unknown."""

    year: int | None = None
    month: int | None = None
    day: int | None = None


# ============================================================================
# Partial Entities (one per provider)
# ============================================================================


class InfoArtwork(BaseModel):
    """Artwork entry as reported by the metadata service."""

    img: str | None = None
    type: str | None = None
    provider_id: str | None = None


class InfoMapping(BaseModel):
    """Provider id entry as reported by the metadata service."""

    id: str
    provider_id: str

    @field_validator("id", mode="before")
    @classmethod
    def id_as_text(cls, v: Any) -> str:
        return str(v)


class MetadataInfo(BaseModel):
    """
    Combined result of the metadata service.

    Built from the general-purpose GraphQL API and the specialized info API,
    the latter overriding same-named fields.
    """

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    id_mal: int | None = None
    title: Title = Field(default_factory=Title)
    status: str | None = None
    format: str | None = None
    season: str | None = None
    year: int | None = None
    description: str | None = None
    color: str | None = None
    trailer: str | None = None
    country_of_origin: str | None = None
    duration: int | None = None
    rating: float | None = None
    popularity: float | None = None
    total_episodes: int = 0
    genres: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    synonyms: list[str] = Field(default_factory=list)
    studios: list[str] = Field(default_factory=list)
    cover_image: str | None = None
    banner_image: str | None = None
    start_date: FuzzyDate | None = None
    end_date: FuzzyDate | None = None
    relations: list[dict[str, Any]] = Field(default_factory=list)
    artwork: list[InfoArtwork] = Field(default_factory=list)
    mappings: list[InfoMapping] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def id_as_text(cls, v: Any) -> str | None:
        return None if v is None else str(v)


class CrossReferenceData(BaseModel):
    """Provider-side details of one cross-reference entry."""

    id: str = ""
    cover_image: str = ""
    id_mal: int = 0
    id_ani: int = 0
    page: str = ""
    title: str = "Unknown Title"
    url: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def id_as_text(cls, v: Any) -> str:
        return "" if v is None else str(v)


class CrossReference(BaseModel):
    """One entry of the cross-reference mapping service."""

    provider_id: str
    data: CrossReferenceData = Field(default_factory=CrossReferenceData)


class MappingArtwork(BaseModel):
    """Artwork entry as reported by the episode-mapping service."""

    type: str | None = None
    image: str | None = None


class MappedEpisode(BaseModel):
    """Per-index episode record of the episode-mapping service."""

    id: str = "0"
    title: str | None = None
    thumbnail: str | None = None
    duration: int | None = None
    description: str | None = None
    number: int | None = None
    season: int | None = None
    air_date: str | None = None
    rating: str | None = None


class EpisodeMapping(BaseModel):
    """Result of the episode-mapping service for one anime."""

    id: str
    title: str = "Unknown Title"
    synonyms: list[str] = Field(default_factory=list)
    cover_image: str | None = None
    banner_image: str | None = None
    slider_image: str | None = None
    artworks: list[MappingArtwork] = Field(default_factory=list)
    episodes: list[MappedEpisode] = Field(default_factory=list)
    mappings: dict[str, Any] = Field(default_factory=dict)


class ScrapedEpisode(BaseModel):
    """Episode as listed by a scraping provider."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    number: int | None = None
    title: str | None = None
    is_filler: bool | None = None
    image: str | None = None
    description: str | None = None
    release_date: str | None = None


class ScrapedInfo(BaseModel):
    """Metadata and episode list from one scraping provider."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    title: str | None = None
    genres: list[str] = Field(default_factory=list)
    synonyms: list[str] = Field(default_factory=list)
    episodes: list[ScrapedEpisode] = Field(default_factory=list)

    @field_validator("genres", "synonyms", "episodes", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


# ============================================================================
# Canonical Entity
# ============================================================================


class Episode(BaseModel):
    """A reconciled episode."""

    title: str
    number: int
    id: str
    season: int
    is_filler: bool
    thumbnail: str
    description: str
    air_date: str
    duration: int
    rating: str


class ProviderEpisodes(BaseModel):
    """Reconciled episodes of one scraping provider."""

    provider_id: str
    data: list[Episode] = Field(default_factory=list)


class Artwork(BaseModel):
    """Artwork entry tagged with the provider it came from."""

    type: str
    provider_id: str
    image: str


class CanonicalAnime(BaseModel):
    """
    Canonical anime record.

    The single reconciled entity for one anime id, merged from every
    provider. `id` cannot change once the record exists.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(frozen=True)
    title: Title = Field(default_factory=Title)
    status: str | None = None
    id_mal: int | None = None
    format: str | None = None
    season: str | None = None
    year: int | None = None
    description: str | None = None
    color: str | None = None
    trailer: str | None = None
    country_of_origin: str | None = None
    duration: int | None = None
    rating: float | None = None
    popularity: float | None = None
    total_episodes: int = 0
    genres: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    synonyms: list[str] = Field(default_factory=list)
    studios: list[str] = Field(default_factory=list)
    cover_image: str | None = None
    banner_image: str | None = None
    slider_image: str | None = None
    start_date: FuzzyDate | None = None
    end_date: FuzzyDate | None = None
    relations: list[dict[str, Any]] = Field(default_factory=list)
    episodes: list[ProviderEpisodes] = Field(default_factory=list)
    artwork: list[Artwork] = Field(default_factory=list)
    mappings: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id")
    @classmethod
    def id_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("id cannot be empty")
        return v.strip()

    def to_document(self) -> dict[str, Any]:
        """
        Serialize to the stored form.

        Top-level keys are ordered by the length of their values, shortest
        first, so two reconciliations of the same inputs produce identical
        documents.
        """
        return sort_keys_by_value_length(self.model_dump(mode="json"))

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "CanonicalAnime":
        """Rebuild from the stored form."""
        return cls.model_validate(document)

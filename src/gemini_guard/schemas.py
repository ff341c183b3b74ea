"""Typed, versioned structured-output schemas.

Each request kind the editorial pipeline sends has one ``SchemaDefinition``:
a tag (``kind``), a ``version`` and a Pydantic model. The model is what the
provider receives as its response schema and what recovered output is
validated against.
"""

from __future__ import annotations

import dataclasses
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _ResponseModel(BaseModel):
    """Every declared field is required; the service output fills nothing in."""

    model_config = ConfigDict(extra="ignore", frozen=True)


# --- Similarity check ---


class SimilarityMatchModel(_ResponseModel):
    title: str
    slug: str
    confidence: float = Field(ge=0, le=100)
    reason: str


class SimilarityCheckModel(_ResponseModel):
    """Whether the query matches any item in one corpus chunk."""

    confidence: float = Field(ge=0, le=100)
    matches: list[SimilarityMatchModel]


# --- Geolocation ---


class GeoLocationModel(_ResponseModel):
    """Most likely location of an entry, as proposed by the service."""

    latitude: float
    longitude: float
    location_name: str
    confidence: float
    used_fallback: bool
    rationale: str


# --- Editorial enrichment ---


class SourceModel(_ResponseModel):
    title: str
    url: str
    summary: str
    relevance_score: float


class EditorialEnrichmentModel(_ResponseModel):
    """Rewritten editorial sections for an existing entry."""

    analysis_summary: str
    mito: str
    historia: str
    versiones: str
    leccion: str
    similitudes: str
    excerpt: str
    seo_title: str
    seo_description: str
    focus_keyword: str
    focus_keywords: list[str]
    sources: list[SourceModel]
    key_sources: list[SourceModel]
    editorial_notes: str


class NewEditorialEntryModel(EditorialEnrichmentModel):
    """A new entry drafted from a topic, including placement and image prompts."""

    title: str
    tags: list[str]
    region: str
    department: str
    community: str
    category_path: str
    image_prompt_horizontal: str
    image_prompt_vertical: str
    latitude: float
    longitude: float
    location_name: str


@dataclasses.dataclass(frozen=True, slots=True)
class SchemaDefinition:
    """A tagged, versioned response schema."""

    kind: str
    version: int
    model: type[BaseModel]

    @property
    def name(self) -> str:
        return f"{self.kind}_v{self.version}"

    def json_schema(self) -> dict[str, Any]:
        return self.model.model_json_schema()

    def validate(self, value: Any) -> BaseModel:
        return self.model.model_validate(value)


SIMILARITY_CHECK = SchemaDefinition("similarity_check", 1, SimilarityCheckModel)
GEO_LOCATION = SchemaDefinition("geo_location", 1, GeoLocationModel)
EDITORIAL_ENRICHMENT = SchemaDefinition(
    "editorial_enrichment", 1, EditorialEnrichmentModel
)
NEW_EDITORIAL_ENTRY = SchemaDefinition(
    "new_editorial_entry", 1, NewEditorialEntryModel
)

_REGISTRY: dict[tuple[str, int], SchemaDefinition] = {
    (d.kind, d.version): d
    for d in (SIMILARITY_CHECK, GEO_LOCATION, EDITORIAL_ENRICHMENT, NEW_EDITORIAL_ENTRY)
}


def get_schema(kind: str, version: int | None = None) -> SchemaDefinition:
    """Look up a schema by kind, newest version unless one is given."""
    if version is not None:
        try:
            return _REGISTRY[(kind, version)]
        except KeyError:
            raise KeyError(f"Unknown schema {kind!r} version {version}") from None
    candidates = [d for (k, _), d in _REGISTRY.items() if k == kind]
    if not candidates:
        raise KeyError(f"Unknown schema {kind!r}")
    return max(candidates, key=lambda d: d.version)

"""Core data types that flow through the resilience layer.

Every value here is request-scoped: it is created for one call, handed back
to the caller and then discarded. Nothing is persisted by this package.
"""

from __future__ import annotations

import dataclasses
from enum import Enum
import json
import math
from types import MappingProxyType
import typing

from gemini_guard.exceptions import ConfigurationError

if typing.TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from gemini_guard.schemas import SchemaDefinition

T = typing.TypeVar("T")


# --- Minimal guard helpers ---


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            raise exc(f"{field_name}: {message}")
        raise exc(message)


def _freeze_mapping(m: Mapping[str, T] | None) -> Mapping[str, T] | None:
    if m is None or isinstance(m, MappingProxyType):
        return m
    return MappingProxyType(dict(m))


# --- Requests ---


@dataclasses.dataclass(frozen=True, slots=True)
class GenerationRequest:
    """A single request to the generative service."""

    instructions: str
    input: str | Mapping[str, typing.Any]
    schema: SchemaDefinition | None = None
    temperature: float = 0.2
    max_output_tokens: int = 800

    def __post_init__(self) -> None:
        _require(
            condition=isinstance(self.instructions, str),
            message="must be str",
            field_name="instructions",
            exc=TypeError,
        )
        _require(
            condition=0.0 <= self.temperature <= 2.0,
            message="must be between 0.0 and 2.0",
            field_name="temperature",
        )
        _require(
            condition=self.max_output_tokens > 0,
            message="must be positive",
            field_name="max_output_tokens",
        )
        if not isinstance(self.input, str):
            object.__setattr__(self, "input", _freeze_mapping(self.input))

    @property
    def input_text(self) -> str:
        """The input payload as text, serializing structured input as JSON."""
        if isinstance(self.input, str):
            return self.input
        return json.dumps(dict(self.input), ensure_ascii=False, default=str)


@dataclasses.dataclass(frozen=True, slots=True)
class ModelQueue:
    """Ordered, deduplicated model identifiers, primary first."""

    models: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.models:
            raise ConfigurationError("Model queue must contain at least one model")
        _require(
            condition=len(set(self.models)) == len(self.models),
            message="must not contain duplicates",
            field_name="models",
        )

    @classmethod
    def build(
        cls,
        primary: str | None,
        fallbacks: str | Iterable[str] | None = None,
        defaults: Iterable[str] = (),
    ) -> ModelQueue:
        """Merge primary, configured fallbacks and defaults in first-seen order.

        ``fallbacks`` may be a comma-separated string, as it comes from
        configuration. Blank entries are dropped.
        """
        if isinstance(fallbacks, str):
            fallbacks = fallbacks.split(",")
        ordered: list[str] = []
        for model in (primary or "", *(fallbacks or ()), *defaults):
            name = str(model).strip()
            if name and name not in ordered:
                ordered.append(name)
        return cls(tuple(ordered))

    @property
    def primary(self) -> str:
        return self.models[0]

    def __iter__(self) -> Iterator[str]:
        return iter(self.models)

    def __len__(self) -> int:
        return len(self.models)


class AttemptOutcome(str, Enum):
    """How a single model attempt ended."""

    SUCCESS = "success"
    ACCESS_DENIED = "access_denied"
    OTHER_ERROR = "other_error"


@dataclasses.dataclass(frozen=True, slots=True)
class GenerationAttempt:
    """One call against one model."""

    model: str
    outcome: AttemptOutcome
    detail: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class Generation[T]:
    """Successful orchestrator result, tagged with the model that produced it."""

    value: T
    model_used: str
    attempts: tuple[GenerationAttempt, ...] = ()

    @property
    def fell_back(self) -> bool:
        return len(self.attempts) > 1


# --- Output recovery ---


class RecoveryStage(str, Enum):
    """Which repair stage produced the parsed value."""

    DIRECT = "direct"
    BRACKET_EXTRACTION = "bracket_extraction"
    ESCAPE_REPAIR = "escape_repair"
    STRUCTURAL_REPAIR = "structural_repair"


@dataclasses.dataclass(frozen=True, slots=True)
class RecoveredValue:
    """A parsed value plus the stage that recovered it (diagnostics only)."""

    value: typing.Any
    stage: RecoveryStage

    @property
    def was_repaired(self) -> bool:
        return self.stage is not RecoveryStage.DIRECT


# --- Corpus comparison ---


@dataclasses.dataclass(frozen=True, slots=True)
class CorpusChunk:
    """A contiguous, size-bounded slice of the comparison corpus."""

    index: int
    items: tuple[Mapping[str, typing.Any], ...]
    serialized_size: int

    def __len__(self) -> int:
        return len(self.items)


@dataclasses.dataclass(frozen=True, slots=True)
class SimilarityMatch:
    """A corpus item the service considers similar to the query."""

    title: str
    identifier: str
    confidence: float
    reason: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, typing.Any]) -> SimilarityMatch:
        """Build from a service match entry, tolerating missing fields."""
        identifier = payload.get("identifier") or payload.get("slug") or ""
        return cls(
            title=str(payload.get("title") or ""),
            identifier=str(identifier),
            confidence=_to_float(payload.get("confidence")),
            reason=str(payload.get("reason") or ""),
        )


@dataclasses.dataclass(frozen=True, slots=True)
class SimilarityVerdict:
    """Aggregated answer to "does the query already exist in the corpus"."""

    confidence: float = 0.0
    matches: tuple[SimilarityMatch, ...] = ()
    model_used: str | None = None
    chunks: int = 0

    def is_duplicate(self, threshold: float) -> bool:
        return self.confidence >= threshold

    @property
    def best_match(self) -> SimilarityMatch | None:
        return self.matches[0] if self.matches else None


# --- Coordinates ---


@dataclasses.dataclass(frozen=True, slots=True)
class CoordinateCandidate:
    """A (latitude, longitude) proposal with the service's confidence."""

    latitude: typing.Any
    longitude: typing.Any
    confidence: float = 0.0
    used_fallback: bool = False
    location_name: str = ""
    rationale: str = ""
    fallback_reason: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, typing.Any]) -> CoordinateCandidate:
        """Build from parsed service output without trusting its types."""
        return cls(
            latitude=payload.get("latitude"),
            longitude=payload.get("longitude"),
            confidence=_to_float(payload.get("confidence")),
            used_fallback=bool(payload.get("used_fallback")),
            location_name=str(payload.get("location_name") or ""),
            rationale=str(payload.get("rationale") or ""),
        )


@dataclasses.dataclass(frozen=True, slots=True)
class RegionCenter:
    """A known-good fallback point for a region."""

    key: str
    latitude: float
    longitude: float
    label: str


@dataclasses.dataclass(frozen=True, slots=True)
class BoundingBox:
    """Inclusive latitude/longitude bounds."""

    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, latitude: float, longitude: float) -> bool:
        return (
            self.min_lat <= latitude <= self.max_lat
            and self.min_lng <= longitude <= self.max_lng
        )


# --- Images ---


@dataclasses.dataclass(frozen=True, slots=True)
class ImageResult:
    """Opaque image payload returned by the provider."""

    data: bytes | None = None
    url: str | None = None
    mime_type: str = "image/png"
    prompt: str = ""
    model_used: str | None = None

    def __post_init__(self) -> None:
        _require(
            condition=self.data is not None or self.url is not None,
            message="an image needs either data or a url",
        )


def _to_float(value: typing.Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0

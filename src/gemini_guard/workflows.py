"""Editorial workflows built on the resilience layer.

``EditorialWorkflows`` is the entry point the editorial pipeline uses. Each
method is one request-scoped operation: locate an entry, enrich it, draft a
new one, check a topic for duplicates, or illustrate it. Nothing is
persisted here; results are returned for the caller to store.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
import dataclasses
import logging
from typing import TYPE_CHECKING, Any

from gemini_guard.adapters.base import ImageGenerationAdapter
from gemini_guard.adapters.mock import MockAdapter
from gemini_guard.comparison.cache import CandidateCache
from gemini_guard.comparison.comparator import CorpusComparator
from gemini_guard.config import load_frozen_config
from gemini_guard.constants import MAX_EXCERPT_CHARS
from gemini_guard.content import (
    build_content,
    normalize_focus_keywords,
    normalize_text,
    truncate_text,
)
from gemini_guard.core.types import CoordinateCandidate
from gemini_guard.exceptions import (
    ConfigurationError,
    GeminiGuardError,
    InsufficientEvidenceError,
)
from gemini_guard.geo.validator import (
    CoordinateValidator,
    StaticRegionCenterLookup,
)
from gemini_guard.prompts import (
    enrichment_request,
    geolocation_request,
    image_prompt,
    new_entry_request,
)
from gemini_guard.resilience.model_fallback import ModelFallbackOrchestrator
from gemini_guard.resilience.safety_retry import SafetyRetryCycle
from gemini_guard.telemetry import TelemetryContext

if TYPE_CHECKING:
    from gemini_guard.adapters.base import GenerationAdapter
    from gemini_guard.config import FrozenConfig
    from gemini_guard.core.types import ImageResult, SimilarityVerdict
    from gemini_guard.geo.validator import RegionCenterLookup
    from gemini_guard.schemas import (
        EditorialEnrichmentModel,
        GeoLocationModel,
        NewEditorialEntryModel,
    )
    from gemini_guard.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)

GENERATION_FAILED = "generation failed"

type CorpusLoader = Callable[[], Iterable[Mapping[str, Any]]]


# --- Results ---


@dataclasses.dataclass(frozen=True, slots=True)
class GeolocationResult:
    coordinates: CoordinateCandidate
    model_used: str | None = None
    warning: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class EnrichmentResult:
    """Validated enrichment plus the fields derived from it for storage."""

    enrichment: EditorialEnrichmentModel
    content: str
    excerpt: str
    focus_keywords: list[str]
    research_notes: str
    model_used: str


@dataclasses.dataclass(frozen=True, slots=True)
class DraftResult:
    entry: NewEditorialEntryModel
    content: str
    excerpt: str
    focus_keywords: list[str]
    research_notes: str
    coordinates: CoordinateCandidate
    model_used: str


@dataclasses.dataclass(frozen=True, slots=True)
class DuplicateCheck:
    verdict: SimilarityVerdict
    threshold: float

    @property
    def is_duplicate(self) -> bool:
        return self.verdict.is_duplicate(self.threshold)


# --- Workflows ---


def create_adapter(config: FrozenConfig) -> GenerationAdapter:
    """The real Gemini adapter when ``use_real_api`` is set, else the mock."""
    if config.use_real_api:
        from gemini_guard.adapters.gemini import GeminiAdapter

        return GeminiAdapter(api_key=config.api_key)
    log.debug("use_real_api is off; using the mock adapter.")
    return MockAdapter()


class EditorialWorkflows:
    """Composes fallback, recovery, safety retry, comparison and validation."""

    def __init__(
        self,
        config: FrozenConfig | None = None,
        adapter: GenerationAdapter | None = None,
        *,
        region_lookup: RegionCenterLookup | None = None,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self.config = config or load_frozen_config()
        self.adapter = adapter or create_adapter(self.config)
        self.tele = telemetry or TelemetryContext()
        self.orchestrator = ModelFallbackOrchestrator(
            self.adapter,
            telemetry=self.tele,
            max_raw_json_chars=self.config.max_raw_json_chars,
        )
        self.validator = CoordinateValidator(
            region_lookup or StaticRegionCenterLookup(),
            min_confidence=self.config.min_coordinate_confidence,
        )
        self.comparator = CorpusComparator(
            self.orchestrator,
            self.config.check_queue(),
            max_chunk_chars=self.config.check_chunk_chars,
            match_limit=self.config.match_limit,
            telemetry=self.tele,
        )
        self.safety = SafetyRetryCycle(
            self.orchestrator,
            self.config.rewrite_queue(),
            telemetry=self.tele,
        )

    def new_candidate_cache(self) -> CandidateCache:
        return CandidateCache(self.config.candidate_cache_ttl)

    # --- Geolocation ---

    def geolocate(self, entry: Mapping[str, Any]) -> GeolocationResult:
        """Locate an entry, falling back to its region center on any failure."""
        region_key = entry.get("region_slug")
        region_name = entry.get("region")
        lookup = self.validator.lookup
        request = geolocation_request(
            entry,
            lookup.resolve(region_key, region_name),
            lookup.default_center,
        )
        try:
            generation = self.orchestrator.generate_json(
                request, self.config.model_queue()
            )
        except GeminiGuardError as e:
            log.warning("Geolocation of %r failed: %s", entry.get("title"), e)
            coordinates = self.validator.fallback(
                None, GENERATION_FAILED, region_key, region_name
            )
            return GeolocationResult(coordinates, warning=str(e))

        located: GeoLocationModel = generation.value.value
        candidate = CoordinateCandidate.from_payload(located.model_dump())
        return GeolocationResult(
            self.validator.validate(candidate, region_key, region_name),
            model_used=generation.model_used,
        )

    # --- Enrichment ---

    def enrich(self, entry: Mapping[str, Any]) -> EnrichmentResult:
        """Rewrite an existing entry's sections with sourced research.

        Raises:
            InsufficientEvidenceError: fewer than ``min_sources`` sources.
        """
        request = enrichment_request(entry, self.config.min_sources)
        generation = self.orchestrator.generate_json(request, self.config.model_queue())
        enrichment: EditorialEnrichmentModel = generation.value.value
        self._require_sources(len(enrichment.sources))
        return EnrichmentResult(
            enrichment=enrichment,
            content=build_content(enrichment.model_dump()),
            excerpt=truncate_text(
                enrichment.excerpt or entry.get("excerpt"), MAX_EXCERPT_CHARS
            ),
            focus_keywords=normalize_focus_keywords(
                enrichment.focus_keywords, enrichment.focus_keyword
            ),
            research_notes=_research_notes(enrichment),
            model_used=generation.model_used,
        )

    def draft_entry(
        self,
        query: str,
        regions: Sequence[Mapping[str, Any]],
        tags: Sequence[str] = (),
    ) -> DraftResult:
        """Draft a new entry on ``query``, placed in one of ``regions``.

        Raises:
            InsufficientEvidenceError: fewer than ``min_sources`` sources.
        """
        if not query or not query.strip():
            raise ValueError("query must not be empty")
        request = new_entry_request(
            query.strip(), regions, tags, self.config.min_sources
        )
        generation = self.orchestrator.generate_json(request, self.config.model_queue())
        entry: NewEditorialEntryModel = generation.value.value
        self._require_sources(len(entry.sources))

        region = _match_region(entry.region, regions)
        # Drafts carry no confidence; only validity and bounds apply.
        candidate = CoordinateCandidate(
            latitude=entry.latitude,
            longitude=entry.longitude,
            confidence=1.0,
            location_name=entry.location_name,
        )
        coordinates = self.validator.validate(
            candidate,
            region.get("slug") if region else None,
            region.get("name") if region else entry.region,
        )
        return DraftResult(
            entry=entry,
            content=build_content(entry.model_dump()),
            excerpt=truncate_text(entry.excerpt, MAX_EXCERPT_CHARS),
            focus_keywords=normalize_focus_keywords(
                entry.focus_keywords, entry.focus_keyword
            ),
            research_notes=_research_notes(entry),
            coordinates=coordinates,
            model_used=generation.model_used,
        )

    def _require_sources(self, found: int) -> None:
        if found < self.config.min_sources:
            raise InsufficientEvidenceError(found, self.config.min_sources)

    # --- Duplicate check ---

    def check_duplicate(
        self,
        query: str,
        corpus: Iterable[Mapping[str, Any]] | None = None,
        *,
        cache: CandidateCache | None = None,
        loader: CorpusLoader | None = None,
    ) -> DuplicateCheck:
        """Compare ``query`` against ``corpus`` (or the cached corpus)."""
        items = self._corpus(corpus, cache, loader)
        verdict = self.comparator.find_similar(query, items)
        return self._duplicate_check(query, verdict)

    async def acheck_duplicate(
        self,
        query: str,
        corpus: Iterable[Mapping[str, Any]] | None = None,
        *,
        cache: CandidateCache | None = None,
        loader: CorpusLoader | None = None,
    ) -> DuplicateCheck:
        items = self._corpus(corpus, cache, loader)
        verdict = await self.comparator.afind_similar(query, items)
        return self._duplicate_check(query, verdict)

    def _duplicate_check(
        self, query: str, verdict: SimilarityVerdict
    ) -> DuplicateCheck:
        check = DuplicateCheck(verdict, self.config.duplicate_threshold)
        if check.is_duplicate:
            best = verdict.best_match
            log.info(
                "'%s' looks like a duplicate (confidence %.0f, best match %r).",
                query,
                verdict.confidence,
                best.identifier if best else None,
            )
        return check

    @staticmethod
    def _corpus(
        corpus: Iterable[Mapping[str, Any]] | None,
        cache: CandidateCache | None,
        loader: CorpusLoader | None,
    ) -> Iterable[Mapping[str, Any]]:
        if corpus is not None:
            return corpus
        if loader is None:
            raise ConfigurationError("check_duplicate needs a corpus or a loader")
        if cache is None:
            return loader()
        return cache.get(loader)

    # --- Images ---

    def generate_image(self, prompt: str) -> ImageResult:
        """Illustrate ``prompt``, rewriting it once if the safety system objects."""
        adapter = self.adapter
        if not isinstance(adapter, ImageGenerationAdapter):
            raise ConfigurationError(
                f"{type(adapter).__name__} does not support image generation"
            )
        model = self.config.image_model
        return self.safety.generate(
            prompt, lambda p: adapter.generate_image(model, image_prompt(p))
        )


def _research_notes(enrichment: EditorialEnrichmentModel) -> str:
    parts = (enrichment.analysis_summary, enrichment.editorial_notes)
    return "\n\n".join(part for part in parts if part)


def _match_region(
    chosen: str, regions: Sequence[Mapping[str, Any]]
) -> Mapping[str, Any] | None:
    wanted = normalize_text(chosen)
    if not wanted:
        return None
    for region in regions:
        keys = (normalize_text(region.get("slug")), normalize_text(region.get("name")))
        if wanted in keys:
            return region
    return None

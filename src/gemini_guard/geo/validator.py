"""Validation of model-proposed coordinates with region-center fallback.

The service is asked where an entry takes place and answers with a point and
a confidence. Points that are not numbers, that fall outside the country, or
that the service itself is unsure about are replaced by a known-good region
center. ``CoordinateValidator.validate`` never raises.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging
import math
from typing import Any, Protocol, runtime_checkable
import unicodedata

from gemini_guard.constants import COORDINATE_PRECISION, MIN_COORDINATE_CONFIDENCE
from gemini_guard.core.types import BoundingBox, CoordinateCandidate, RegionCenter

log = logging.getLogger(__name__)

COLOMBIA_BOUNDS = BoundingBox(min_lat=-4.5, max_lat=13.5, min_lng=-79.2, max_lng=-66.6)

COLOMBIA_CENTER = RegionCenter(
    key="colombia",
    latitude=4.570868,
    longitude=-74.297333,
    label="Centro de Colombia",
)

REGION_CENTERS: Mapping[str, RegionCenter] = {
    center.key: center
    for center in (
        RegionCenter("amazonas", -1.2, -71.8, "Amazonas, Colombia"),
        RegionCenter("andina", 4.8, -74.1, "Región Andina, Colombia"),
        RegionCenter("caribe", 10.6, -75.3, "Región Caribe, Colombia"),
        RegionCenter("orinoquia", 4.2, -71.4, "Orinoquía, Colombia"),
        RegionCenter("pacifico", 4.0, -77.2, "Región Pacífica, Colombia"),
        RegionCenter(
            "varios", COLOMBIA_CENTER.latitude, COLOMBIA_CENTER.longitude, "Colombia"
        ),
    )
}

# Fallback reasons
INVALID_COORDINATES = "invalid coordinates"
OUTSIDE_BOUNDS = "outside bounds"
LOW_CONFIDENCE = "low confidence"
MODEL_REQUESTED_FALLBACK = "model requested fallback"


def normalize_region_key(value: Any) -> str:
    """Lowercase, strip accents and remove whitespace: 'Orinoquía ' -> 'orinoquia'."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFD", str(value).lower())
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return "".join(stripped.split())


@runtime_checkable
class RegionCenterLookup(Protocol):
    """Resolves a region slug or display name to its fallback center."""

    def resolve(
        self, region_key: str | None, region_name: str | None = None
    ) -> RegionCenter:
        """Return the center for the region, or the country center."""
        ...

    @property
    def default_center(self) -> RegionCenter:
        """The center used when no region matches."""
        ...


class StaticRegionCenterLookup:
    """Lookup backed by an in-memory table of region centers."""

    def __init__(
        self,
        centers: Mapping[str, RegionCenter] = REGION_CENTERS,
        default: RegionCenter = COLOMBIA_CENTER,
    ) -> None:
        self._centers = {normalize_region_key(k): v for k, v in centers.items()}
        self._default = default

    @property
    def default_center(self) -> RegionCenter:
        return self._default

    def resolve(
        self, region_key: str | None, region_name: str | None = None
    ) -> RegionCenter:
        for candidate in (region_key, region_name):
            key = normalize_region_key(candidate)
            if key and key in self._centers:
                return self._centers[key]
        return self._default


class CoordinateValidator:
    """Accepts a candidate point or replaces it with a region center."""

    def __init__(
        self,
        lookup: RegionCenterLookup | None = None,
        *,
        bounds: BoundingBox = COLOMBIA_BOUNDS,
        min_confidence: float = MIN_COORDINATE_CONFIDENCE,
        precision: int = COORDINATE_PRECISION,
    ) -> None:
        self.lookup = lookup or StaticRegionCenterLookup()
        self.bounds = bounds
        self.min_confidence = min_confidence
        self.precision = precision

    def validate(
        self,
        candidate: CoordinateCandidate,
        region_key: str | None,
        region_name: str | None = None,
    ) -> CoordinateCandidate:
        latitude = _finite_float(candidate.latitude)
        confidence = _finite_float(candidate.confidence) or 0.0
        longitude = _finite_float(candidate.longitude)

        if latitude is None or longitude is None:
            reason = INVALID_COORDINATES
        elif not self.bounds.contains(latitude, longitude):
            reason = OUTSIDE_BOUNDS
        elif candidate.used_fallback:
            reason = MODEL_REQUESTED_FALLBACK
        elif confidence < self.min_confidence:
            reason = LOW_CONFIDENCE
        else:
            return CoordinateCandidate(
                latitude=round(latitude, self.precision),
                longitude=round(longitude, self.precision),
                confidence=min(max(confidence, 0.0), 1.0),
                used_fallback=False,
                location_name=candidate.location_name,
                rationale=candidate.rationale,
            )

        return self.fallback(candidate, reason, region_key, region_name)

    def fallback(
        self,
        candidate: CoordinateCandidate | None,
        reason: str,
        region_key: str | None,
        region_name: str | None = None,
    ) -> CoordinateCandidate:
        """The region center, tagged with ``reason`` and confidence 0."""
        center = self.lookup.resolve(region_key, region_name)
        log.info(
            "Using region center '%s' for region %r (%s).",
            center.label,
            region_key or region_name,
            reason,
        )
        return CoordinateCandidate(
            latitude=center.latitude,
            longitude=center.longitude,
            confidence=0.0,
            used_fallback=True,
            location_name=center.label or self.lookup.default_center.label,
            rationale=candidate.rationale if candidate else "",
            fallback_reason=reason,
        )


def _finite_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None

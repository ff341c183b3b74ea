"""Coordinate validation with region-center fallback."""

from .validator import (
    COLOMBIA_BOUNDS,
    COLOMBIA_CENTER,
    REGION_CENTERS,
    CoordinateValidator,
    RegionCenterLookup,
    StaticRegionCenterLookup,
    normalize_region_key,
)

__all__ = [
    "COLOMBIA_BOUNDS",
    "COLOMBIA_CENTER",
    "REGION_CENTERS",
    "CoordinateValidator",
    "RegionCenterLookup",
    "StaticRegionCenterLookup",
    "normalize_region_key",
]

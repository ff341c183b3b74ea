"""Source tracking for configuration values."""

from collections import Counter

from .types import ConfigOrigin, SourceMap


class SourceTracker:
    """Builds up a SourceMap as configuration is resolved.

    Later calls for the same field overwrite earlier ones, so applying
    sources from lowest to highest precedence leaves the winning origin.
    """

    def __init__(self) -> None:
        self._origins: dict[str, ConfigOrigin] = {}

    def set_origin(self, field: str, origin: ConfigOrigin) -> None:
        self._origins[field] = origin

    def get_source_map(self) -> SourceMap:
        return dict(self._origins)


def summarize_origins(source_map: SourceMap) -> dict[str, int]:
    """Counts per origin (e.g. ``{"env": 3, "default": 11}``), no values."""
    return dict(Counter(source_map.values()))

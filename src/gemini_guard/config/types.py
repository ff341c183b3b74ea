"""Core configuration data types.

Configuration follows a resolve-once, freeze-then-flow pattern: sources are
merged into a ``ResolvedConfig`` (which remembers where each value came
from) and then frozen into the ``FrozenConfig`` that components consume.
"""

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Literal, NamedTuple

from gemini_guard.constants import DEFAULT_MODEL_FALLBACKS
from gemini_guard.core.types import ModelQueue

from .schema import ENV_PREFIX

# --- Source Tracking Types ---

ConfigOrigin = Literal["programmatic", "env", "file", "default"]
SourceMap = Mapping[str, ConfigOrigin]

SENSITIVE_FIELDS = frozenset({"api_key"})

# --- Core Configuration Data ---


class ResolvedConfig(NamedTuple):
    """Configuration after resolution from all sources, before freezing."""

    api_key: str | None
    model: str
    check_model: str | None
    rewrite_model: str
    image_model: str
    model_fallbacks: tuple[str, ...]
    use_real_api: bool
    max_raw_json_chars: int
    check_chunk_chars: int
    duplicate_threshold: float
    min_sources: int
    match_limit: int
    candidate_cache_ttl: float
    min_coordinate_confidence: float

    # Audit metadata - tracks where each field value came from
    origin: SourceMap

    def __str__(self) -> str:
        """String representation with redacted API key for safe logging."""
        rendered = _render(self.to_frozen())
        return f"ResolvedConfig({rendered}, origin={dict(self.origin)!r})"

    def __repr__(self) -> str:
        return self.__str__()

    def to_frozen(self) -> "FrozenConfig":
        values = self._asdict()
        values.pop("origin")
        return FrozenConfig(**values)

    def with_overrides(self, **overrides: object) -> "ResolvedConfig":
        """Copy with programmatic overrides applied. Unknown fields are ignored."""
        new_values = self._asdict()
        new_origin = dict(self.origin)
        for field, value in overrides.items():
            if field in new_values and field != "origin":
                new_values[field] = value
                new_origin[field] = "programmatic"
        new_values["origin"] = new_origin
        return ResolvedConfig(**new_values)

    def audit(self) -> str:
        """Redacted report of the origin of each field, one per line."""
        lines = []
        for field in self._fields:
            if field == "origin" or field not in self.origin:
                continue
            origin = self.origin[field]
            value = getattr(self, field)
            if field in SENSITIVE_FIELDS:
                if value is None:
                    display = f"{origin}:None"
                elif origin == "env":
                    display = "env:[REDACTED]"
                else:
                    display = f"{origin}:<redacted>"
            elif origin == "env":
                display = f"env:{ENV_PREFIX}{field.upper()}={_plain(value)}"
            else:
                display = f"{origin}:{_plain(value)}"
            lines.append(f"{field}: {display}")
        return "\n".join(lines)


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable configuration handed to components.

    Any attempt to modify this object raises ``FrozenInstanceError``.
    """

    api_key: str | None
    model: str
    check_model: str | None
    rewrite_model: str
    image_model: str
    model_fallbacks: tuple[str, ...]
    use_real_api: bool
    max_raw_json_chars: int
    check_chunk_chars: int
    duplicate_threshold: float
    min_sources: int
    match_limit: int
    candidate_cache_ttl: float
    min_coordinate_confidence: float

    def __str__(self) -> str:
        return f"FrozenConfig({_render(self)})"

    def __repr__(self) -> str:
        return self.__str__()

    def model_queue(self, primary: str | None = None) -> ModelQueue:
        """Queue of ``primary`` (default ``model``), fallbacks, then built-ins."""
        return ModelQueue.build(
            primary or self.model,
            self.model_fallbacks,
            DEFAULT_MODEL_FALLBACKS,
        )

    def check_queue(self) -> ModelQueue:
        return self.model_queue(self.check_model)

    def rewrite_queue(self) -> ModelQueue:
        return self.model_queue(self.rewrite_model)


def _render(config: FrozenConfig) -> str:
    parts = []
    for f in fields(config):
        value = getattr(config, f.name)
        if f.name in SENSITIVE_FIELDS and value:
            value = "[REDACTED]"
        parts.append(f"{f.name}={value!r}")
    return ", ".join(parts)


def _plain(value: object) -> str:
    if isinstance(value, tuple):
        return ",".join(map(str, value))
    return str(value)

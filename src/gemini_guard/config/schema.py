"""Configuration schema and validation using Pydantic.

This module defines the settings schema that validates and coerces configuration
values from the environment, pyproject.toml and programmatic overrides into the
correct types with proper defaults.
"""

from collections.abc import Iterable
from typing import Annotated, Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from gemini_guard.constants import (
    CANDIDATE_CACHE_TTL,
    DEFAULT_IMAGE_MODEL,
    DEFAULT_MODEL,
    DEFAULT_REWRITE_MODEL,
    DUPLICATE_THRESHOLD,
    MATCH_LIMIT,
    MAX_CHECK_CHUNK_CHARS,
    MAX_RAW_JSON_CHARS,
    MIN_COORDINATE_CONFIDENCE,
    MIN_SOURCES,
)

ENV_PREFIX = "GEMINI_GUARD_"


class GuardSettings(BaseSettings):
    """Pydantic settings schema for the resilience layer.

    Handles validation, type coercion and defaults for every configuration
    field, and reads ``GEMINI_GUARD_*`` environment variables.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=None,  # Only used when explicitly requested
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Credentials and models ---

    api_key: str | None = Field(default=None, description="Google Gemini API key")

    model: str = Field(
        default=DEFAULT_MODEL,
        description="Primary model for editorial requests",
        min_length=1,
    )

    check_model: str | None = Field(
        default=None,
        description="Model for similarity checks (defaults to `model`)",
    )

    rewrite_model: str = Field(
        default=DEFAULT_REWRITE_MODEL,
        description="Model that rewrites prompts rejected by the safety system",
        min_length=1,
    )

    image_model: str = Field(
        default=DEFAULT_IMAGE_MODEL,
        description="Image generation model",
        min_length=1,
    )

    model_fallbacks: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(),
        description="Models tried after the primary, comma-separated in env",
    )

    use_real_api: bool = Field(
        default=False,
        description="Use the real API instead of the mock adapter",
    )

    # --- Limits and thresholds ---

    max_raw_json_chars: int = Field(default=MAX_RAW_JSON_CHARS, ge=1)
    check_chunk_chars: int = Field(default=MAX_CHECK_CHUNK_CHARS, ge=1)
    duplicate_threshold: float = Field(default=DUPLICATE_THRESHOLD, ge=0, le=100)
    min_sources: int = Field(default=MIN_SOURCES, ge=0)
    match_limit: int = Field(default=MATCH_LIMIT, ge=1)
    candidate_cache_ttl: float = Field(default=CANDIDATE_CACHE_TTL, ge=0)
    min_coordinate_confidence: float = Field(
        default=MIN_COORDINATE_CONFIDENCE, ge=0, le=1
    )

    # --- Validation Rules ---

    @field_validator("model_fallbacks", mode="before")
    @classmethod
    def parse_fallbacks(cls, v: Any) -> tuple[str, ...]:
        """Accept a comma-separated string or any iterable of model names."""
        if v is None:
            return ()
        if isinstance(v, str):
            v = v.split(",")
        if not isinstance(v, Iterable):
            raise ValueError(f"Invalid model_fallbacks: {v!r}")
        return tuple(name.strip() for name in map(str, v) if name.strip())

    @model_validator(mode="after")
    def validate_api_key_requirement(self) -> "GuardSettings":
        """Ensure api_key is provided when use_real_api is True."""
        if self.use_real_api and not self.api_key:
            raise ValueError(
                "api_key is required when use_real_api=True. "
                "Set GEMINI_GUARD_API_KEY, provide it in pyproject.toml, "
                "or pass it programmatically."
            )
        return self

    @classmethod
    def defaults(cls) -> dict[str, Any]:
        """Schema defaults, without reading the environment."""
        return {name: field.default for name, field in cls.model_fields.items()}

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()

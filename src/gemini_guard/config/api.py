"""Public API for the configuration system."""

from pathlib import Path
from typing import Any

from .resolver import ConfigResolver
from .types import FrozenConfig, ResolvedConfig

_resolver = ConfigResolver()

# ruff: noqa: T201


def resolve_config(
    programmatic: dict[str, Any] | None = None,
    *,
    profile: str | None = None,
    use_env_file: str | Path | None = None,
    project_root: Path | None = None,
) -> ResolvedConfig:
    """Resolve configuration from all sources with proper precedence.

    Precedence: Programmatic > Environment > Project file > Defaults

    Args:
        programmatic: Overrides with the highest precedence. Only known
            configuration fields are used.
        profile: Profile from ``[tool.gemini_guard.profiles]``. If None, uses
            ``GEMINI_GUARD_PROFILE`` when set.
        use_env_file: Optional .env file to load before reading the environment.
        project_root: Directory to search for pyproject.toml.

    Raises:
        ConfigurationError: If configuration is malformed or invalid.

    Example:
        config = resolve_config({"model": "gemini-2.5-flash"})
        frozen = config.to_frozen()
    """
    return _resolver.resolve(
        programmatic=programmatic,
        profile=profile,
        use_env_file=use_env_file,
        project_root=project_root,
    )


def load_frozen_config(
    programmatic: dict[str, Any] | None = None, **kwargs: Any
) -> FrozenConfig:
    """Shorthand for ``resolve_config(...).to_frozen()``."""
    return resolve_config(programmatic, **kwargs).to_frozen()


def list_available_profiles(project_root: Path | None = None) -> list[str]:
    return _resolver.list_available_profiles(project_root)


def get_effective_profile() -> str | None:
    return _resolver.get_effective_profile()


def print_config_audit(config: ResolvedConfig) -> None:
    """Print where each configuration value came from, secrets redacted.

    Example output:
        api_key: env:[REDACTED]
        model: file:gemini-2.5-flash
        min_sources: default:20
    """
    print(config.audit())


def check_environment() -> dict[str, str]:
    """Currently set ``GEMINI_GUARD_*`` variables, secrets redacted."""
    return _resolver.env_loader.get_env_summary()

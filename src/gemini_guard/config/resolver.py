"""Configuration resolution with precedence handling.

Sources are merged in this order, later ones winning:
Defaults < Project file < Environment < Programmatic
"""

import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from gemini_guard.exceptions import ConfigurationError

from .audit import SourceTracker
from .env_loader import EnvironmentConfigLoader
from .file_loader import ConfigFileError, FileConfigLoader
from .schema import ENV_PREFIX, GuardSettings
from .types import ConfigOrigin, ResolvedConfig

log = logging.getLogger(__name__)

PROFILE_ENV_VAR = f"{ENV_PREFIX}PROFILE"


class ConfigResolver:
    """Resolves configuration from multiple sources with proper precedence."""

    def __init__(self) -> None:
        self.file_loader = FileConfigLoader()
        self.env_loader = EnvironmentConfigLoader()

    def resolve(
        self,
        programmatic: dict[str, Any] | None = None,
        *,
        profile: str | None = None,
        use_env_file: str | Path | None = None,
        project_root: Path | None = None,
    ) -> ResolvedConfig:
        """Resolve configuration from all sources.

        Args:
            programmatic: Programmatic overrides (highest precedence).
            profile: Profile name to load from pyproject.toml. Defaults to
                ``GEMINI_GUARD_PROFILE``.
            use_env_file: Optional .env file to load.
            project_root: Directory to search for pyproject.toml.

        Raises:
            ConfigurationError: If a source is malformed or the merged values
                fail validation.
        """
        tracker = SourceTracker()
        merged: dict[str, Any] = {}

        if profile is None:
            profile = self.get_effective_profile()

        def apply(values: dict[str, Any], origin: ConfigOrigin) -> None:
            for field, value in values.items():
                if field not in merged:
                    log.debug("Ignoring unknown config field '%s' (%s).", field, origin)
                    continue
                merged[field] = value
                tracker.set_origin(field, origin)

        merged.update(GuardSettings.defaults())
        for field in merged:
            tracker.set_origin(field, "default")

        try:
            apply(
                self.file_loader.load_project_config(
                    project_root=project_root, profile=profile
                ),
                "file",
            )
        except ConfigFileError as e:
            # A broken base table is fatal; a missing profile only warns.
            if profile is None:
                raise
            log.warning("Skipping profile '%s': %s", profile, e.message)

        apply(self.env_loader.load_env_config(env_file=use_env_file), "env")

        if programmatic:
            apply(programmatic, "programmatic")

        try:
            settings = GuardSettings(**merged)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

        return ResolvedConfig(**settings.to_dict(), origin=tracker.get_source_map())

    def get_effective_profile(self) -> str | None:
        return os.getenv(PROFILE_ENV_VAR) or None

    def list_available_profiles(self, project_root: Path | None = None) -> list[str]:
        return self.file_loader.list_available_profiles(project_root)

"""Configuration management for gemini_guard.

Resolve once, freeze, then flow:

- ResolvedConfig: merged configuration with the origin of every field
- FrozenConfig: immutable configuration handed to components
- SourceMap: audit record of where each value came from
"""

from .api import (
    check_environment,
    get_effective_profile,
    list_available_profiles,
    load_frozen_config,
    print_config_audit,
    resolve_config,
)
from .audit import SourceTracker, summarize_origins
from .file_loader import ConfigFileError, FileConfigLoader
from .resolver import ConfigResolver
from .schema import GuardSettings
from .types import ConfigOrigin, FrozenConfig, ResolvedConfig, SourceMap

__all__ = [
    "ConfigFileError",
    "ConfigOrigin",
    "ConfigResolver",
    "FileConfigLoader",
    "FrozenConfig",
    "GuardSettings",
    "ResolvedConfig",
    "SourceMap",
    "SourceTracker",
    "check_environment",
    "get_effective_profile",
    "list_available_profiles",
    "load_frozen_config",
    "print_config_audit",
    "resolve_config",
    "summarize_origins",
]

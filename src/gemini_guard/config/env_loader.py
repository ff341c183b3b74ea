"""Environment variable configuration loading.

Reads ``GEMINI_GUARD_*`` variables, optionally after loading a .env file. The
resolver coerces the raw strings through ``GuardSettings``.
"""

import os
from pathlib import Path
from typing import Any

from gemini_guard.exceptions import ConfigurationError

from .schema import ENV_PREFIX, GuardSettings


def env_var_names() -> dict[str, str]:
    """Map of environment variable name to settings field."""
    return {f"{ENV_PREFIX}{name.upper()}": name for name in GuardSettings.model_fields}


class EnvironmentConfigLoader:
    """Loads configuration from environment variables and .env files."""

    def load_env_config(self, env_file: str | Path | None = None) -> dict[str, Any]:
        """Load the raw values of fields that are set in the environment.

        Values are returned as strings; coercion and validation happen once,
        on the merged configuration.

        Args:
            env_file: Optional .env file loaded into ``os.environ`` first.
                Variables that are already set are not overwritten.

        Raises:
            ConfigurationError: If the .env file is missing or malformed.
        """
        if env_file:
            self._load_env_file(env_file)

        names = env_var_names()
        return {
            field: os.environ[env_var]
            for env_var, field in names.items()
            if env_var in os.environ
        }

    def _load_env_file(self, env_file: str | Path) -> None:
        env_path = Path(env_file)
        if not env_path.exists():
            raise ConfigurationError(f"Environment file not found: {env_path}")

        try:
            with env_path.open(encoding="utf-8") as f:
                for line_num, raw_line in enumerate(f, 1):
                    line = raw_line.strip()
                    if not line or line.startswith("#"):
                        continue
                    if line.startswith("export "):
                        line = line[len("export ") :].lstrip()
                    if "=" not in line:
                        raise ConfigurationError(
                            f"Invalid format at {env_path}:{line_num}: {line}. "
                            "Expected KEY=VALUE format."
                        )

                    key, value = (part.strip() for part in line.split("=", 1))
                    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
                        value = value[1:-1]

                    # Never override variables that are already set
                    os.environ.setdefault(key, value)
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read environment file {env_path}: {e}"
            ) from e

    def get_env_summary(self) -> dict[str, str]:
        """Currently set ``GEMINI_GUARD_*`` variables, secrets redacted."""
        return {
            env_var: "<redacted>" if "API_KEY" in env_var else os.environ[env_var]
            for env_var in env_var_names()
            if env_var in os.environ
        }

"""Project file configuration loading with profile support.

Configuration lives in the ``[tool.gemini_guard]`` table of the nearest
pyproject.toml. Named profiles live in ``[tool.gemini_guard.profiles.<name>]``
and replace the base table when selected.
"""

from pathlib import Path
import tomllib
from typing import Any

from gemini_guard.exceptions import ConfigurationError


class ConfigFileError(ConfigurationError):
    """Raised when configuration file loading fails."""

    def __init__(
        self, file_path: Path, message: str, cause: Exception | None = None
    ) -> None:
        self.file_path = file_path
        self.message = message
        self.cause = cause
        super().__init__(f"Config file error in {file_path}: {message}")


class FileConfigLoader:
    """Loads the ``gemini_guard`` table from pyproject.toml."""

    def load_project_config(
        self, project_root: Path | None = None, profile: str | None = None
    ) -> dict[str, Any]:
        """Load configuration from pyproject.toml.

        Args:
            project_root: Directory to start searching from. If None, searches
                the current directory and its parents.
            profile: Optional profile name. If None, the base table is loaded.

        Returns:
            Configuration values from the file; empty if there is no file or no
            ``gemini_guard`` table.

        Raises:
            ConfigFileError: If the file cannot be parsed or the profile is
                missing.
        """
        pyproject_path = self._find_pyproject_toml(project_root)
        if not pyproject_path:
            return {}

        guard_config = self._read_tool_table(pyproject_path)
        if not guard_config:
            return {}

        if profile:
            profiles = guard_config.get("profiles", {})
            if profile not in profiles:
                raise ConfigFileError(
                    pyproject_path,
                    f"Profile '{profile}' not found. "
                    f"Available profiles: {list(profiles)}",
                )
            return dict(profiles[profile])

        config = dict(guard_config)
        config.pop("profiles", None)
        return config

    def list_available_profiles(self, project_root: Path | None = None) -> list[str]:
        pyproject_path = self._find_pyproject_toml(project_root)
        if not pyproject_path:
            return []
        try:
            guard_config = self._read_tool_table(pyproject_path)
        except ConfigFileError:
            return []
        return list(guard_config.get("profiles", {}))

    def _read_tool_table(self, pyproject_path: Path) -> dict[str, Any]:
        try:
            with pyproject_path.open(mode="rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigFileError(
                pyproject_path, f"Failed to parse TOML: {e}", cause=e
            ) from e
        table = data.get("tool", {}).get("gemini_guard", {})
        if not isinstance(table, dict):
            raise ConfigFileError(pyproject_path, "[tool.gemini_guard] must be a table")
        return table

    def _find_pyproject_toml(self, start_dir: Path | None = None) -> Path | None:
        current = Path(start_dir or Path.cwd()).resolve()
        for directory in (current, *current.parents):
            candidate = directory / "pyproject.toml"
            if candidate.exists():
                return candidate
        return None

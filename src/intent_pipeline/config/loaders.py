"""Environment and file configuration loading.

Environment variables use the INTENT_PIPELINE_ prefix. Project-level values
live in `[tool.intent_pipeline]` of the nearest pyproject.toml.
"""

import logging
import os
from pathlib import Path
import tomllib
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .schema import FIELD_NAMES, PipelineSettings

log = logging.getLogger(__name__)

ENV_PREFIX = "INTENT_PIPELINE_"
_NULLABLE_FIELDS = frozenset({"stage_timeout_seconds"})
_NULL_WORDS = frozenset({"", "none", "null", "off"})


class ConfigFileError(Exception):
    """Raised when configuration file loading fails."""

    def __init__(
        self, file_path: Path, message: str, cause: Exception | None = None
    ) -> None:
        self.file_path = file_path
        self.message = message
        self.cause = cause
        super().__init__(f"Config file error in {file_path}: {message}")


class EnvironmentConfigLoader:
    """Loads configuration from INTENT_PIPELINE_* environment variables."""

    def load_env_config(self, env_file: str | Path | None = None) -> dict[str, Any]:
        """Load configuration values set in the environment.

        Args:
            env_file: Optional .env file loaded first. Existing environment
                variables are never overridden by the file.

        Returns:
            Only the fields actually present in the environment, coerced
            through the settings schema.

        Raises:
            ValueError: If environment variables contain invalid values.
        """
        if env_file:
            self._load_env_file(env_file)

        env_values: dict[str, Any] = {}
        for field_name in FIELD_NAMES:
            env_var = f"{ENV_PREFIX}{field_name.upper()}"
            if env_var not in os.environ:
                continue
            raw = os.environ[env_var]
            if field_name in _NULLABLE_FIELDS and raw.strip().lower() in _NULL_WORDS:
                env_values[field_name] = None
            else:
                env_values[field_name] = raw

        if not env_values:
            return {}

        try:
            settings = PipelineSettings.model_validate(env_values)
        except PydanticValidationError as e:
            pairs = ", ".join(
                f"{ENV_PREFIX}{name.upper()}={os.environ[f'{ENV_PREFIX}{name.upper()}']}"
                for name in env_values
            )
            raise ValueError(f"Invalid environment variable values: {pairs}. Error: {e}") from e

        return {field_name: getattr(settings, field_name) for field_name in env_values}

    def _load_env_file(self, env_file: str | Path) -> None:
        env_path = Path(env_file)
        if not env_path.exists():
            raise FileNotFoundError(f"Environment file not found: {env_path}")

        with env_path.open(encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                if "=" not in line:
                    raise ValueError(
                        f"Invalid format at line {line_num}: {line}. "
                        "Expected KEY=VALUE format."
                    )
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip()
                if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
                    value = value[1:-1]
                if key not in os.environ:
                    os.environ[key] = value


class FileConfigLoader:
    """Loads configuration from the `[tool.intent_pipeline]` table."""

    def load_project_config(self, project_root: Path | None = None) -> dict[str, Any]:
        """Load configuration from the nearest pyproject.toml.

        Returns:
            Known fields found in the table; empty if no file or table exists.

        Raises:
            ConfigFileError: If the file exists but cannot be parsed, or the
                table is not a table.
        """
        pyproject_path = self._find_pyproject_toml(project_root)
        if pyproject_path is None:
            return {}

        try:
            with pyproject_path.open(mode="rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigFileError(
                pyproject_path, f"Failed to parse TOML: {e}", cause=e
            ) from e

        section = data.get("tool", {}).get("intent_pipeline", {})
        if not isinstance(section, dict):
            raise ConfigFileError(
                pyproject_path, "[tool.intent_pipeline] must be a table"
            )

        unknown = sorted(set(section) - set(FIELD_NAMES))
        if unknown:
            log.debug("Ignoring unknown config keys in %s: %s", pyproject_path, unknown)
        return {key: value for key, value in section.items() if key in FIELD_NAMES}

    def _find_pyproject_toml(self, start: Path | None) -> Path | None:
        current = (start or Path.cwd()).resolve()
        for directory in (current, *current.parents):
            candidate = directory / "pyproject.toml"
            if candidate.is_file():
                return candidate
        return None

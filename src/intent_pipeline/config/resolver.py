"""Configuration resolution with precedence handling.

Precedence order: Programmatic > Environment > Project file > Defaults.
"""

from pathlib import Path
from typing import Any

from intent_pipeline.core.exceptions import ConfigurationError

from .loaders import ConfigFileError, EnvironmentConfigLoader, FileConfigLoader
from .schema import PipelineSettings
from .types import ConfigOrigin, ResolvedConfig


class ConfigResolver:
    """Resolves configuration from multiple sources with proper precedence."""

    def __init__(self) -> None:
        self.file_loader = FileConfigLoader()
        self.env_loader = EnvironmentConfigLoader()

    def resolve(
        self,
        programmatic: dict[str, Any] | None = None,
        *,
        use_env_file: str | Path | None = None,
        project_root: Path | None = None,
    ) -> ResolvedConfig:
        """Resolve configuration from all sources.

        Raises:
            ConfigurationError: If any source is malformed or the merged
                values fail validation.
        """
        origins: dict[str, ConfigOrigin] = {}
        merged: dict[str, Any] = {}

        for field, value in PipelineSettings.defaults().items():
            merged[field] = value
            origins[field] = "default"

        try:
            file_config = self.file_loader.load_project_config(project_root)
        except ConfigFileError as e:
            raise ConfigurationError(str(e)) from e
        self._apply(merged, origins, file_config, "file")

        try:
            env_config = self.env_loader.load_env_config(env_file=use_env_file)
        except (ValueError, FileNotFoundError) as e:
            raise ConfigurationError(f"Environment configuration error: {e}") from e
        self._apply(merged, origins, env_config, "env")

        self._apply(merged, origins, programmatic or {}, "programmatic")

        try:
            final = PipelineSettings.model_validate(merged).to_dict()
        except ValueError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

        return ResolvedConfig(**final, origin=origins)

    @staticmethod
    def _apply(
        merged: dict[str, Any],
        origins: dict[str, ConfigOrigin],
        values: dict[str, Any],
        origin: ConfigOrigin,
    ) -> None:
        for field, value in values.items():
            if field in merged:  # Only override known fields
                merged[field] = value
                origins[field] = origin


# Global resolver instance for efficient reuse
_resolver = ConfigResolver()


def resolve_config(
    programmatic: dict[str, Any] | None = None,
    *,
    use_env_file: str | Path | None = None,
    project_root: Path | None = None,
) -> ResolvedConfig:
    """Resolve configuration from all sources with proper precedence.

    Example:
        config = resolve_config({"max_attempts": 1}).to_frozen()
    """
    return _resolver.resolve(
        programmatic, use_env_file=use_env_file, project_root=project_root
    )

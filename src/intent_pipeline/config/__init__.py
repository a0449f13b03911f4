"""Configuration management for the intent pipeline.

Configuration is resolved once from all sources, then frozen before it
reaches the orchestrator.

Key components:
- PipelineSettings: Pydantic schema validating every source
- ResolvedConfig: Post-resolution configuration with audit metadata
- FrozenConfig: Immutable configuration for pipeline execution
"""

from .loaders import ConfigFileError, EnvironmentConfigLoader, FileConfigLoader
from .resolver import ConfigResolver, resolve_config
from .schema import PipelineSettings
from .types import ConfigOrigin, FrozenConfig, ResolvedConfig, SourceMap

__all__ = [  # noqa: RUF022
    "PipelineSettings",
    "FrozenConfig",
    "ResolvedConfig",
    "ConfigOrigin",
    "SourceMap",
    "ConfigResolver",
    "resolve_config",
    "ConfigFileError",
    "EnvironmentConfigLoader",
    "FileConfigLoader",
]

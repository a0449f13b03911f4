"""Configuration schema and validation using Pydantic.

This module defines the settings schema that validates and coerces configuration
values from various sources (environment, files, programmatic) into the correct
types with proper defaults.
"""

from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PipelineSettings(BaseSettings):
    """Pydantic settings schema for the intent pipeline.

    Integrates with environment variables using the INTENT_PIPELINE_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="INTENT_PIPELINE_",
        env_file=None,  # Only used when explicitly requested
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Retry policy ---

    max_attempts: int = Field(
        default=3,
        description="Attempts per collaborator call, including the first",
        ge=1,
        le=10,
    )

    retry_delay_seconds: float = Field(
        default=0.5,
        description="Fixed delay between attempts",
        ge=0,
    )

    stage_timeout_seconds: float | None = Field(
        default=30.0,
        description="Upper bound for a single collaborator attempt; None disables it",
        gt=0,
    )

    # --- Telemetry ---

    telemetry_enabled: bool = Field(
        default=True,
        description="Forward stage records to the logging sink",
    )

    # --- Intent preconditions ---

    min_intent_length: int = Field(
        default=10,
        description="Minimum intent length after trimming",
        ge=1,
    )

    max_intent_length: int = Field(
        default=5000,
        description="Maximum raw intent length",
        ge=1,
    )

    @model_validator(mode="after")
    def validate_length_bounds(self) -> "PipelineSettings":
        """Ensure the intent length window is not empty."""
        if self.min_intent_length > self.max_intent_length:
            raise ValueError(
                "min_intent_length must not exceed max_intent_length "
                f"({self.min_intent_length} > {self.max_intent_length})"
            )
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary suitable for origin tracking."""
        return {name: getattr(self, name) for name in FIELD_NAMES}

    @classmethod
    def defaults(cls) -> dict[str, Any]:
        """Declared field defaults, without reading the environment."""
        return {name: cls.model_fields[name].default for name in FIELD_NAMES}


FIELD_NAMES: tuple[str, ...] = (
    "max_attempts",
    "retry_delay_seconds",
    "stage_timeout_seconds",
    "telemetry_enabled",
    "min_intent_length",
    "max_intent_length",
)

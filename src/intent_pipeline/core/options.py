"""Caller-supplied run options, validated with Pydantic.

Options arrive either as a `PipelineOptions` instance or as a plain mapping
from a protocol layer. Both snake_case and camelCase keys are accepted.
"""

from collections.abc import Mapping
import dataclasses
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from intent_pipeline.core.exceptions import ValidationError

_MODEL_CONFIG = ConfigDict(
    frozen=True,
    extra="forbid",
    alias_generator=to_camel,
    populate_by_name=True,
)


class CostCeiling(BaseModel):
    """Upper bounds on quota consumption for a run."""

    model_config = _MODEL_CONFIG

    max_units_a: float | None = Field(default=None, ge=0, le=10_000)
    max_units_b: float | None = Field(default=None, ge=0, le=1_000)
    max_cost_currency: float | None = Field(default=None, ge=0, le=100_000)


class PipelineOptions(BaseModel):
    """Optional configuration bag accompanying a raw intent."""

    model_config = _MODEL_CONFIG

    expected_load: int | None = Field(default=None, ge=0, le=1_000_000)
    cost_ceiling: CostCeiling | None = None
    performance_sensitivity: Literal["low", "medium", "high"] | None = None


def coerce_options(
    options: PipelineOptions | Mapping[str, Any] | None,
) -> PipelineOptions | None:
    """Normalize caller options into a validated `PipelineOptions`.

    Raises:
        ValidationError: If the options are malformed or inconsistent.
    """
    if options is None or isinstance(options, PipelineOptions):
        return options
    if not isinstance(options, Mapping):
        raise ValidationError(
            f"Options must be a mapping or PipelineOptions, got {type(options).__name__}",
            field_name="options",
        )
    try:
        return PipelineOptions.model_validate(dict(options))
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise ValidationError(
            f"Invalid option {location or '<root>'}: {first.get('msg', 'invalid value')}",
            field_name=location or None,
        ) from e


@dataclasses.dataclass(frozen=True, slots=True)
class Intent:
    """An accepted raw intent. Immutable once the preconditions pass."""

    text: str
    options: PipelineOptions | None = None

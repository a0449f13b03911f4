"""Stage input and output validators.

Output validators encode the minimal semantic floor for each stage's value.
They raise `DegradedResultError` for a value that is well-formed but unusable
(so a fallback may replace it) and `StageContractError` for a value nothing
can repair. Input validators check that upstream values can feed a stage.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from intent_pipeline.core.exceptions import (
    DegradedResultError,
    StageContractError,
    ValidationError,
)
from intent_pipeline.core.models import (
    ConsultingAnalysis,
    ConsultingSummary,
    OptimizedWorkflow,
    ParsedIntent,
    ROIAnalysis,
    SpecArtifact,
)

if TYPE_CHECKING:
    from intent_pipeline.config import FrozenConfig
    from intent_pipeline.pipeline.base import StageState

# Bare words that pass the length check but carry no intent
_PLACEHOLDER_INTENTS = frozenset({"test", "hello", "hi"})


# --- Entry preconditions ---


def check_raw_intent(raw_intent: object, config: FrozenConfig) -> str:
    """Validate the raw intent text before any stage runs.

    Both length bounds apply to the text with surrounding whitespace removed.

    Returns:
        The text, unmodified.

    Raises:
        ValidationError: For non-string, blank, too short, too long or
            placeholder input.
    """
    if not isinstance(raw_intent, str):
        raise ValidationError(
            f"Intent must be a string, got {type(raw_intent).__name__}",
            field_name="intent",
        )
    text = raw_intent.strip()
    if not text:
        raise ValidationError("Intent must be a non-empty string", field_name="intent")
    if len(text) < config.min_intent_length:
        raise ValidationError(
            f"Intent is too short ({len(text)} characters); "
            f"at least {config.min_intent_length} are required",
            field_name="intent",
        )
    if len(text) > config.max_intent_length:
        raise ValidationError(
            f"Intent is too long ({len(text)} characters); "
            f"at most {config.max_intent_length} are allowed",
            field_name="intent",
        )
    lowered = text.lower()
    if lowered in _PLACEHOLDER_INTENTS or (len(lowered) == 1 and lowered.isalpha()):
        raise ValidationError(
            "Intent appears to be a placeholder rather than a description",
            field_name="intent",
        )
    return raw_intent


# --- Input validators ---


def _require_upstream(value: object, name: str) -> None:
    if value is None:
        raise StageContractError(
            f"Upstream value '{name}' is missing", kind="pipeline_error"
        )


def require_parsed(state: StageState) -> None:
    _require_upstream(state.parsed, "parsed intent")


def require_parsed_and_analysis(state: StageState) -> None:
    _require_upstream(state.parsed, "parsed intent")
    _require_upstream(state.analysis, "analysis")


def require_workflow_and_analysis(state: StageState) -> None:
    _require_upstream(state.workflow, "optimized workflow")
    _require_upstream(state.analysis, "analysis")


def require_analysis(state: StageState) -> None:
    _require_upstream(state.analysis, "analysis")


def require_emit_inputs(state: StageState) -> None:
    """The spec emitter needs a workflow with at least one step."""
    _require_upstream(state.parsed, "parsed intent")
    _require_upstream(state.workflow, "optimized workflow")
    _require_upstream(state.summary, "consulting summary")
    _require_upstream(state.roi, "ROI analysis")
    if state.workflow is not None and not state.workflow.steps:
        raise StageContractError("Optimized workflow has no steps to implement")


# --- Output validators ---


def _wrong_type(value: object, expected: type) -> StageContractError:
    return StageContractError(
        f"Expected {expected.__name__}, got {type(value).__name__}",
        kind="pipeline_error",
    )


def validate_parsed_intent(value: object, state: StageState) -> None:
    if not isinstance(value, ParsedIntent):
        raise _wrong_type(value, ParsedIntent)
    if not value.business_objective.strip():
        raise StageContractError("Failed to extract business objective from intent")
    if not value.operations_required:
        raise DegradedResultError("No operations identified in intent", partial=value)


def validate_analysis(value: object, state: StageState) -> None:
    if not isinstance(value, ConsultingAnalysis):
        raise _wrong_type(value, ConsultingAnalysis)
    if not value.techniques_used:
        raise DegradedResultError("No consulting techniques were applied", partial=value)
    if value.total_quota_savings < 0:
        raise DegradedResultError(
            f"Negative savings estimate ({value.total_quota_savings})", partial=value
        )


def validate_optimized_workflow(value: object, state: StageState) -> None:
    if not isinstance(value, OptimizedWorkflow):
        raise _wrong_type(value, OptimizedWorkflow)
    if not value.optimizations:
        raise DegradedResultError("No optimizations were applied", partial=value)
    if value.efficiency_gain < 0:
        raise DegradedResultError(
            f"Negative efficiency gain ({value.efficiency_gain}%)", partial=value
        )


def validate_roi(value: object, state: StageState) -> None:
    if not isinstance(value, ROIAnalysis):
        raise _wrong_type(value, ROIAnalysis)
    if not value.scenarios:
        raise DegradedResultError("No ROI scenarios generated", partial=value)
    for scenario in value.scenarios:
        forecast = scenario.forecast
        if min(
            forecast.units_a_consumed, forecast.units_b_consumed, forecast.estimated_cost
        ) < 0:
            raise DegradedResultError(
                f"Scenario '{scenario.name}' forecasts negative consumption",
                partial=value,
            )


def validate_summary(value: object, state: StageState) -> None:
    if not isinstance(value, ConsultingSummary):
        raise _wrong_type(value, ConsultingSummary)
    if not value.executive_summary.strip():
        raise DegradedResultError("Executive summary is empty", partial=value)
    if not value.recommendations:
        raise DegradedResultError("No recommendations generated", partial=value)


def validate_artifact(value: object, state: StageState) -> None:
    if not isinstance(value, SpecArtifact):
        raise _wrong_type(value, SpecArtifact)
    if not value.name.strip():
        raise StageContractError("Spec artifact has no name")
    if not value.tasks:
        raise DegradedResultError("No tasks generated in spec", partial=value)

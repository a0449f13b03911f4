"""Fallback value factories, one per stage that can degrade.

Each factory is a pure function of the run state, the degenerate value (if
the collaborator produced one) and the failure that triggered it. Applying a
factory to its own output yields the same value.
"""

from __future__ import annotations

from collections.abc import Mapping
import dataclasses
import logging
import math
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from intent_pipeline.core.exceptions import DegradedResultError, StageContractError
from intent_pipeline.core.models import (
    ConsultingAnalysis,
    ConsultingSummary,
    ConsultingTechnique,
    EfficiencyGains,
    Operation,
    Optimization,
    OptimizationScenario,
    OptimizedWorkflow,
    ParsedIntent,
    QuotaBreakdown,
    QuotaForecast,
    Recommendation,
    ROIAnalysis,
    SavingsEstimate,
    SpecArtifact,
    SpecTask,
    Workflow,
)
from intent_pipeline.core.types import StageName
from intent_pipeline.rendering import render_spec_document

if TYPE_CHECKING:
    from intent_pipeline.pipeline.base import FallbackFactory, StageContract, StageState

log = logging.getLogger(__name__)

DEFAULT_OPERATION = Operation(
    id="default-op-1",
    type="analysis",
    description="Analyze and process user requirements",
    estimated_quota_cost=5,
)
MINIMAL_TECHNIQUE = ConsultingTechnique(
    name="MECE", relevance_score=0.5, applicable_scenarios=("general analysis",)
)
GENERIC_TASK = SpecTask(
    id="task-1",
    description="Implement optimized workflow based on analysis",
    estimated_effort="medium",
)
DEFAULT_RECOMMENDATION = "Apply identified optimizations to improve efficiency"

MIN_POSITIVE_SAVINGS = 5
DEGRADED_ANALYSIS_SAVINGS = 15
FAILED_ANALYSIS_SAVINGS = 10
DEGRADED_CACHING_SAVINGS = 10
FAILED_CACHING_SAVINGS = 5
FALLBACK_BALANCED_SAVINGS = 20
_FALLBACK_STEP_COUNT = 3


@dataclasses.dataclass(frozen=True, slots=True)
class Fallback[T]:
    """A substitute stage value. `degraded` is surfaced to telemetry only."""

    value: T
    reason: str
    degraded: bool = True


# --- Factories ---


def parsed_intent_fallback(
    state: StageState, partial: ParsedIntent | None, cause: BaseException
) -> ParsedIntent:
    """Substitute a single generic operation for an intent with none."""
    if isinstance(partial, ParsedIntent):
        return dataclasses.replace(partial, operations_required=(DEFAULT_OPERATION,))
    options = state.intent.options
    return ParsedIntent(
        business_objective=state.intent.text.strip(),
        operations_required=(DEFAULT_OPERATION,),
        cost_ceiling=options.cost_ceiling if options is not None else None,
    )


def analysis_fallback(
    state: StageState, partial: ConsultingAnalysis | None, cause: BaseException
) -> ConsultingAnalysis:
    """Minimal single-technique analysis with a non-negative savings estimate."""
    if isinstance(partial, ConsultingAnalysis):
        if partial.techniques_used:
            savings = partial.total_quota_savings
            return dataclasses.replace(
                partial,
                total_quota_savings=savings if savings >= 0 else MIN_POSITIVE_SAVINGS,
            )
        return dataclasses.replace(
            partial,
            techniques_used=(MINIMAL_TECHNIQUE,),
            key_findings=("General workflow analysis completed",),
            total_quota_savings=DEGRADED_ANALYSIS_SAVINGS,
        )
    return ConsultingAnalysis(
        techniques_used=(MINIMAL_TECHNIQUE,),
        key_findings=("Basic analysis completed with limited techniques",),
        total_quota_savings=FAILED_ANALYSIS_SAVINGS,
        implementation_complexity="medium",
    )


def optimization_fallback(
    state: StageState, partial: OptimizedWorkflow | None, cause: BaseException
) -> OptimizedWorkflow:
    """Single caching optimization with a small fixed savings percentage."""
    if isinstance(partial, OptimizedWorkflow):
        workflow, original = partial.workflow, partial.original_workflow
        percentage = DEGRADED_CACHING_SAVINGS
    else:
        if state.parsed is None:
            raise StageContractError(
                "Cannot build a fallback workflow without a parsed intent",
                kind="pipeline_error",
            )
        original = workflow = Workflow.from_intent(state.parsed)
        percentage = FAILED_CACHING_SAVINGS

    first_step = workflow.steps[0].id if workflow.steps else "step-1"
    optimization = Optimization(
        type="caching",
        description="Basic caching optimization applied",
        steps_affected=(first_step,),
        estimated_savings=SavingsEstimate(percentage=percentage),
    )
    return OptimizedWorkflow(
        workflow=workflow,
        optimizations=(optimization,),
        efficiency_gains=EfficiencyGains(
            units_a_reduction=percentage,
            total_savings_percentage=percentage,
        ),
        original_workflow=original,
        cost_ceiling=state.parsed.cost_ceiling if state.parsed else None,
    )


def fallback_forecast(workflow: Workflow | None) -> QuotaForecast:
    """Conservative low-confidence forecast derived from the step count alone."""
    steps = len(workflow.steps) if workflow is not None and workflow.steps else 0
    steps = steps or _FALLBACK_STEP_COUNT
    units_a = steps * 2
    units_b = math.ceil(steps / 2)
    cost = round(steps * 0.05, 4)
    return QuotaForecast(
        units_a_consumed=units_a,
        units_b_consumed=units_b,
        estimated_cost=cost,
        confidence_level="low",
        scenario="fallback",
        breakdown=(
            QuotaBreakdown(
                step_id="fallback",
                step_description="Fallback estimation",
                units_a=units_a,
                units_b=units_b,
                cost=cost,
            ),
        ),
    )


def _non_negative(forecast: QuotaForecast) -> bool:
    return (
        min(forecast.units_a_consumed, forecast.units_b_consumed, forecast.estimated_cost)
        >= 0
    )


def roi_fallback(
    state: StageState, partial: ROIAnalysis | None, cause: BaseException
) -> ROIAnalysis:
    """Fixed scenario table used when forecasting yields nothing usable.

    Degenerate output keeps its usable scenarios and gains a balanced one if
    it has none. A failed forecaster gets a conservative baseline and a
    balanced scenario so the report has both sides.
    """
    workflow = state.workflow
    optimized = fallback_forecast(workflow.workflow if workflow else None)
    balanced = OptimizationScenario(
        name="Balanced",
        forecast=optimized,
        savings_percentage=FALLBACK_BALANCED_SAVINGS,
        implementation_effort="medium",
        risk_level="low",
    )
    recommendations = ("Apply moderate optimization for balanced risk-reward",)
    risk = "Low risk with moderate savings potential"

    if isinstance(partial, ROIAnalysis):
        usable = tuple(s for s in partial.scenarios if _non_negative(s.forecast))
        if all(s.name != "Balanced" for s in usable):
            usable = (*usable, balanced)
        return ROIAnalysis(
            scenarios=usable,
            recommendations=recommendations,
            best_option="Balanced",
            risk_assessment=risk,
        )

    baseline = fallback_forecast(workflow.original_workflow if workflow else None)
    conservative = OptimizationScenario(
        name="Conservative",
        forecast=baseline,
        savings_percentage=0,
        implementation_effort="none",
        risk_level="none",
    )
    balanced = dataclasses.replace(
        balanced,
        forecast=dataclasses.replace(
            baseline, estimated_cost=round(baseline.estimated_cost * 0.8, 4)
        ),
    )
    return ROIAnalysis(
        scenarios=(conservative, balanced),
        recommendations=recommendations,
        best_option="Balanced",
        risk_assessment=risk,
    )


def summary_fallback(
    state: StageState, partial: ConsultingSummary | None, cause: BaseException
) -> ConsultingSummary:
    """Fill in a missing executive summary or recommendation list.

    Only degenerate summaries are repaired; a failed summarize call has no
    substitute.
    """
    if not isinstance(partial, ConsultingSummary) or state.analysis is None:
        raise StageContractError(
            "Summary generation failed and no partial summary is available"
        )
    analysis = state.analysis
    summary = partial
    if not summary.recommendations:
        summary = dataclasses.replace(
            summary,
            recommendations=(
                Recommendation(
                    main_recommendation=DEFAULT_RECOMMENDATION,
                    supporting_reasons=(
                        "Analysis indicates potential for improvement",
                        "Current workflow has optimization opportunities",
                    ),
                    expected_outcome=(
                        f"Expected {analysis.total_quota_savings:g}% improvement "
                        "in quota efficiency"
                    ),
                ),
            ),
        )
    if not summary.executive_summary.strip():
        summary = dataclasses.replace(
            summary,
            executive_summary=(
                f"Analysis using {len(analysis.techniques_used)} consulting techniques "
                f"reveals {analysis.total_quota_savings:g}% potential quota savings "
                "through systematic optimization."
            ),
        )
    return summary


def artifact_fallback(
    state: StageState, partial: SpecArtifact | None, cause: BaseException
) -> SpecArtifact:
    """Give a task-less artifact one generic implementation task."""
    if not isinstance(partial, SpecArtifact):
        raise StageContractError(
            "Spec emission failed and no partial artifact is available"
        )
    artifact = dataclasses.replace(partial, tasks=(GENERIC_TASK,))
    if artifact.document:
        artifact = dataclasses.replace(artifact, document=render_spec_document(artifact))
    return artifact


FALLBACK_FACTORIES: Mapping[StageName, FallbackFactory] = MappingProxyType(
    {
        StageName.INTENT: parsed_intent_fallback,
        StageName.ANALYSIS: analysis_fallback,
        StageName.OPTIMIZATION: optimization_fallback,
        StageName.FORECASTING: roi_fallback,
        StageName.SUMMARY: summary_fallback,
        StageName.SPEC: artifact_fallback,
    }
)


# --- Resolution ---


def describe_cause(cause: BaseException) -> str:
    if isinstance(cause, DegradedResultError):
        return cause.reason
    return f"{type(cause).__name__}: {cause}"


def resolve_fallback(
    contract: StageContract,
    cause: BaseException,
    *,
    state: StageState,
    partial: Any = None,
) -> Fallback[Any]:
    """Build the substitute value for a failed or degenerate stage.

    Raises:
        StageContractError: If the stage has no safe substitute.
    """
    if contract.fallback is None:
        raise StageContractError(
            f"Stage '{contract.name}' has no fallback: {describe_cause(cause)}",
            suggested_action=contract.suggested_action,
        )
    value = contract.fallback(state, partial, cause)
    reason = describe_cause(cause)
    log.warning("Stage '%s' degraded, using fallback: %s", contract.name, reason)
    return Fallback(value=value, reason=reason)

"""Domain value types exchanged between pipeline stages.

Every value here is an immutable dataclass. Stages never mutate an upstream
value; fallback substitution and collaborator post-processing build new
instances with `dataclasses.replace`.
"""

from __future__ import annotations

import dataclasses
import hashlib
import typing

if typing.TYPE_CHECKING:
    from intent_pipeline.core.options import CostCeiling

OperationType = typing.Literal[
    "vibe", "spec", "data_retrieval", "processing", "analysis"
]
Level = typing.Literal["low", "medium", "high"]
Effort = typing.Literal["small", "medium", "large"]

# --- Stage 1: intent parsing ---


@dataclasses.dataclass(frozen=True, slots=True)
class TechnicalRequirement:
    """A technical capability the intent implies."""

    type: typing.Literal["data_retrieval", "processing", "analysis", "output"]
    description: str
    complexity: Level = "medium"
    quota_impact: typing.Literal["minimal", "moderate", "significant"] = "moderate"


@dataclasses.dataclass(frozen=True, slots=True)
class Operation:
    """A unit of work extracted from the intent."""

    id: str
    type: OperationType
    description: str
    estimated_quota_cost: float


@dataclasses.dataclass(frozen=True, slots=True)
class Risk:
    """An efficiency risk spotted in the intent text."""

    type: typing.Literal[
        "redundant_query", "excessive_loops", "unnecessary_vibes", "missing_cache"
    ]
    severity: Level
    description: str
    likelihood: float


@dataclasses.dataclass(frozen=True, slots=True)
class ParsedIntent:
    """Structured form of a raw intent."""

    business_objective: str
    operations_required: tuple[Operation, ...] = ()
    technical_requirements: tuple[TechnicalRequirement, ...] = ()
    data_sources_needed: tuple[str, ...] = ()
    potential_risks: tuple[Risk, ...] = ()
    cost_ceiling: CostCeiling | None = None


# --- Stage 2: consulting analysis ---


@dataclasses.dataclass(frozen=True, slots=True)
class ConsultingTechnique:
    """A consulting technique selected for the analysis."""

    name: str
    relevance_score: float
    applicable_scenarios: tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True, slots=True)
class ConsultingAnalysis:
    """Outcome of applying consulting techniques to a parsed intent."""

    techniques_used: tuple[ConsultingTechnique, ...]
    key_findings: tuple[str, ...]
    total_quota_savings: float
    implementation_complexity: Level = "medium"
    zero_based_savings: float | None = None


# --- Stage 3: workflow optimization ---


@dataclasses.dataclass(frozen=True, slots=True)
class WorkflowStep:
    """A single step of an executable workflow."""

    id: str
    type: OperationType
    description: str
    quota_cost: float
    inputs: tuple[str, ...] = ()
    outputs: tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True, slots=True)
class Workflow:
    """An ordered list of workflow steps."""

    id: str
    steps: tuple[WorkflowStep, ...]
    estimated_complexity: int = 0

    @classmethod
    def from_intent(cls, intent: ParsedIntent) -> Workflow:
        """Build the unoptimized workflow implied by a parsed intent.

        The workflow id is derived from the objective so identical intents
        yield identical workflows.
        """
        digest = hashlib.sha1(
            intent.business_objective.encode("utf-8"), usedforsecurity=False
        ).hexdigest()[:10]
        steps = tuple(
            WorkflowStep(
                id=op.id,
                type=op.type,
                description=op.description,
                quota_cost=op.estimated_quota_cost,
            )
            for op in intent.operations_required
        )
        return cls(
            id=f"workflow-{digest}",
            steps=steps,
            estimated_complexity=len(intent.technical_requirements),
        )


@dataclasses.dataclass(frozen=True, slots=True)
class SavingsEstimate:
    """Estimated savings of a single optimization."""

    units_a: float = 0
    units_b: float = 0
    percentage: float = 0


@dataclasses.dataclass(frozen=True, slots=True)
class Optimization:
    """An optimization applied to one or more workflow steps."""

    type: typing.Literal["batching", "caching", "decomposition", "vibe_to_spec"]
    description: str
    steps_affected: tuple[str, ...]
    estimated_savings: SavingsEstimate = SavingsEstimate()


@dataclasses.dataclass(frozen=True, slots=True)
class EfficiencyGains:
    """Aggregate savings of an optimized workflow, in percent and currency."""

    units_a_reduction: float = 0
    units_b_reduction: float = 0
    cost_savings: float = 0
    total_savings_percentage: float = 0


@dataclasses.dataclass(frozen=True, slots=True)
class OptimizedWorkflow:
    """A workflow together with the optimizations applied to it."""

    workflow: Workflow
    optimizations: tuple[Optimization, ...]
    efficiency_gains: EfficiencyGains
    original_workflow: Workflow
    cost_ceiling: CostCeiling | None = None

    @property
    def steps(self) -> tuple[WorkflowStep, ...]:
        return self.workflow.steps

    @property
    def efficiency_gain(self) -> float:
        """Total savings percentage; never negative once validated."""
        return self.efficiency_gains.total_savings_percentage


# --- Stage 4: forecasting ---


@dataclasses.dataclass(frozen=True, slots=True)
class QuotaBreakdown:
    step_id: str
    step_description: str
    units_a: float
    units_b: float
    cost: float


@dataclasses.dataclass(frozen=True, slots=True)
class QuotaForecast:
    """Forecast quota consumption of a workflow under one scenario."""

    units_a_consumed: float
    units_b_consumed: float
    estimated_cost: float
    confidence_level: Level = "medium"
    scenario: typing.Literal["naive", "optimized", "zero-based", "fallback"] = "naive"
    breakdown: tuple[QuotaBreakdown, ...] = ()


@dataclasses.dataclass(frozen=True, slots=True)
class OptimizationScenario:
    """One named ROI scenario (conservative, balanced or bold)."""

    name: str
    forecast: QuotaForecast
    savings_percentage: float
    implementation_effort: str
    risk_level: str


@dataclasses.dataclass(frozen=True, slots=True)
class ROIAnalysis:
    """Scenario table with a recommended option."""

    scenarios: tuple[OptimizationScenario, ...]
    recommendations: tuple[str, ...] = ()
    best_option: str = ""
    risk_assessment: str = ""

    def scenario(self, name: str) -> OptimizationScenario | None:
        """Return the first scenario whose name contains `name` (case-insensitive)."""
        needle = name.lower()
        for scenario in self.scenarios:
            if needle in scenario.name.lower():
                return scenario
        return None


# --- Stage 5: summary ---


@dataclasses.dataclass(frozen=True, slots=True)
class Evidence:
    type: typing.Literal["quantitative", "qualitative"]
    description: str
    source: str
    confidence: Level = "medium"


@dataclasses.dataclass(frozen=True, slots=True)
class Recommendation:
    main_recommendation: str
    supporting_reasons: tuple[str, ...] = ()
    evidence: tuple[Evidence, ...] = ()
    expected_outcome: str = ""


@dataclasses.dataclass(frozen=True, slots=True)
class ConsultingSummary:
    """Presentation-ready prose summarizing the analysis."""

    executive_summary: str
    recommendations: tuple[Recommendation, ...]
    key_findings: tuple[str, ...] = ()
    supporting_evidence: tuple[Evidence, ...] = ()


# --- Stage 6: spec artifact ---


@dataclasses.dataclass(frozen=True, slots=True)
class SpecRequirement:
    id: str
    user_story: str
    acceptance_criteria: tuple[str, ...]
    priority: Level = "medium"


@dataclasses.dataclass(frozen=True, slots=True)
class SpecTask:
    id: str
    description: str
    requirements: tuple[str, ...] = ()
    estimated_effort: Effort = "medium"
    subtasks: tuple[SpecTask, ...] = ()


@dataclasses.dataclass(frozen=True, slots=True)
class ComponentDescription:
    name: str
    purpose: str
    interfaces: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True, slots=True)
class SpecDesign:
    overview: str
    architecture: str
    components: tuple[ComponentDescription, ...] = ()
    data_models: tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True, slots=True)
class SpecMetadata:
    original_intent: str
    optimizations_applied: tuple[str, ...] = ()
    estimated_quota_usage: QuotaForecast | None = None
    version: str = "1.0.0"


@dataclasses.dataclass(frozen=True, slots=True)
class OptionSummary:
    """A summarized alternative implementation option."""

    name: str
    description: str
    quota_savings: float
    implementation_effort: Level
    risk_level: Level
    estimated_roi: float


@dataclasses.dataclass(frozen=True, slots=True)
class AlternativeOptions:
    conservative: OptionSummary
    balanced: OptionSummary
    bold: OptionSummary


@dataclasses.dataclass(frozen=True, slots=True)
class SpecArtifact:
    """Final structured artifact produced by the pipeline."""

    name: str
    description: str
    requirements: tuple[SpecRequirement, ...]
    design: SpecDesign
    tasks: tuple[SpecTask, ...]
    metadata: SpecMetadata
    consulting_summary: ConsultingSummary
    roi_analysis: ROIAnalysis
    alternative_options: AlternativeOptions
    document: str = ""


# --- Derived report ---


@dataclasses.dataclass(frozen=True, slots=True)
class EfficiencyReport:
    """Savings projection derived from the ROI scenarios of a run."""

    naive_consumption: QuotaForecast | None
    optimized_consumption: QuotaForecast | None
    savings_percentage: float
    cost_savings: float
    optimization_notes: tuple[str, ...] = ()

"""Spec artifact emission."""

from __future__ import annotations

import dataclasses
import logging

from intent_pipeline.core.models import (
    AlternativeOptions,
    ComponentDescription,
    ConsultingSummary,
    Effort,
    OptimizedWorkflow,
    OptionSummary,
    ROIAnalysis,
    SpecArtifact,
    SpecDesign,
    SpecMetadata,
    SpecRequirement,
    SpecTask,
    WorkflowStep,
)
from intent_pipeline.rendering import render_spec_document

log = logging.getLogger(__name__)

_EFFORT_BY_COST: tuple[tuple[int, Effort], ...] = ((2, "small"), (4, "medium"))

_COMPONENTS: dict[str, tuple[str, str]] = {
    "data_retrieval": ("DataAccessLayer", "Retrieves and caches data from the required sources"),
    "processing": ("ServiceLayer", "Implements the business operations"),
    "analysis": ("AnalyticsEngine", "Aggregates data into reports and insights"),
    "vibe": ("AssistantGateway", "Handles free-form assistant calls"),
    "spec": ("SpecRunner", "Executes structured spec calls"),
}


def _effort(step: WorkflowStep) -> Effort:
    for limit, effort in _EFFORT_BY_COST:
        if step.quota_cost <= limit:
            return effort
    return "large"


class SpecEmitter:
    """Builds the final artifact from the optimized workflow and analysis."""

    def emit_spec(
        self,
        workflow: OptimizedWorkflow,
        summary: ConsultingSummary,
        roi: ROIAnalysis,
        objective: str,
    ) -> SpecArtifact:
        steps = workflow.steps
        requirements = tuple(
            SpecRequirement(
                id=f"req-{i}",
                user_story=f"As a user, I want {step.description.lower()}, "
                f"so that I can {objective}",
                acceptance_criteria=(
                    f"WHEN {step.description.lower()} is requested "
                    "THEN the system SHALL complete it successfully",
                    f"IF {step.description.lower()} fails "
                    "THEN the system SHALL report a clear error",
                ),
                priority="high" if i == 1 else "medium",
            )
            for i, step in enumerate(steps, start=1)
        )
        tasks = tuple(
            SpecTask(
                id=f"task-{i}",
                description=f"Implement {step.description.lower()}",
                requirements=(f"req-{i}",),
                estimated_effort=_effort(step),
            )
            for i, step in enumerate(steps, start=1)
        )
        tasks += tuple(
            SpecTask(
                id=f"task-{len(steps) + i}",
                description=f"Apply optimization: {opt.description}",
                requirements=tuple(
                    f"req-{n}"
                    for n, step in enumerate(steps, start=1)
                    if step.id in opt.steps_affected
                ),
                estimated_effort="small",
            )
            for i, opt in enumerate(workflow.optimizations, start=1)
        )

        balanced = roi.scenario("balanced")
        artifact = SpecArtifact(
            name=f"Optimized {objective}",
            description=summary.executive_summary,
            requirements=requirements,
            design=self._design(workflow, objective),
            tasks=tasks,
            metadata=SpecMetadata(
                original_intent=objective,
                optimizations_applied=tuple(o.description for o in workflow.optimizations),
                estimated_quota_usage=balanced.forecast if balanced else None,
            ),
            consulting_summary=summary,
            roi_analysis=roi,
            alternative_options=self._alternatives(roi),
        )
        log.debug("Emitted spec %r with %d task(s)", artifact.name, len(tasks))
        return dataclasses.replace(artifact, document=render_spec_document(artifact))

    @staticmethod
    def _design(workflow: OptimizedWorkflow, objective: str) -> SpecDesign:
        seen: dict[str, ComponentDescription] = {}
        for step in workflow.steps:
            name, purpose = _COMPONENTS.get(step.type, ("Core", "Core application logic"))
            if name not in seen:
                seen[name] = ComponentDescription(name=name, purpose=purpose)
        return SpecDesign(
            overview=f"Design for {objective} across {len(workflow.steps)} workflow steps",
            architecture="Layered service with cached data access",
            components=tuple(seen.values()),
            data_models=(),
        )

    @staticmethod
    def _alternatives(roi: ROIAnalysis) -> AlternativeOptions:
        def savings(name: str, default: float) -> float:
            scenario = roi.scenario(name)
            return scenario.savings_percentage if scenario else default

        return AlternativeOptions(
            conservative=OptionSummary(
                name="Conservative",
                description="Minimal changes with low risk",
                quota_savings=0,
                implementation_effort="low",
                risk_level="low",
                estimated_roi=1.0,
            ),
            balanced=OptionSummary(
                name="Balanced",
                description="Moderate optimization with balanced risk-reward",
                quota_savings=savings("balanced", 25),
                implementation_effort="medium",
                risk_level="low",
                estimated_roi=2.5,
            ),
            bold=OptionSummary(
                name="Bold",
                description="Aggressive optimization with higher risk but maximum savings",
                quota_savings=savings("bold", 50),
                implementation_effort="high",
                risk_level="medium",
                estimated_roi=4.0,
            ),
        )

"""Deterministic default collaborators for the six pipeline stages.

Every collaborator here is stateless and safe to share between concurrent
runs. Identical inputs always produce identical outputs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .analysis import BusinessAnalyzer
from .costs import DEFAULT_COST_MODEL, CostModel
from .forecaster import QuotaForecaster
from .intent import IntentParser
from .optimizer import WorkflowOptimizer
from .spec import SpecEmitter
from .summary import SummaryGenerator

if TYPE_CHECKING:
    from intent_pipeline.core.models import (
        ConsultingAnalysis,
        ConsultingSummary,
        ConsultingTechnique,
        OptimizedWorkflow,
        ParsedIntent,
        ROIAnalysis,
        SpecArtifact,
    )
    from intent_pipeline.core.options import PipelineOptions


class DefaultCollaborators:
    """Bundles the built-in collaborators behind the `Collaborators` protocol."""

    def __init__(self, cost_model: CostModel = DEFAULT_COST_MODEL):
        self.intent_parser = IntentParser()
        self.analyzer = BusinessAnalyzer()
        self.optimizer = WorkflowOptimizer(cost_model)
        self.forecaster = QuotaForecaster(cost_model)
        self.summary_generator = SummaryGenerator()
        self.spec_emitter = SpecEmitter()

    def parse(self, text: str, options: PipelineOptions | None) -> ParsedIntent:
        return self.intent_parser.parse(text, options)

    def analyze(self, intent: ParsedIntent) -> ConsultingAnalysis:
        return self.analyzer.analyze(intent)

    def optimize(
        self, intent: ParsedIntent, analysis: ConsultingAnalysis
    ) -> OptimizedWorkflow:
        return self.optimizer.optimize(intent, analysis)

    def forecast(
        self, workflow: OptimizedWorkflow, analysis: ConsultingAnalysis
    ) -> ROIAnalysis:
        return self.forecaster.forecast(workflow, analysis)

    def summarize(
        self,
        analysis: ConsultingAnalysis,
        techniques: tuple[ConsultingTechnique, ...],
    ) -> ConsultingSummary:
        return self.summary_generator.summarize(analysis, techniques)

    def emit_spec(
        self,
        workflow: OptimizedWorkflow,
        summary: ConsultingSummary,
        roi: ROIAnalysis,
        objective: str,
    ) -> SpecArtifact:
        return self.spec_emitter.emit_spec(workflow, summary, roi, objective)


__all__ = [  # noqa: RUF022
    "DefaultCollaborators",
    "IntentParser",
    "BusinessAnalyzer",
    "WorkflowOptimizer",
    "QuotaForecaster",
    "SummaryGenerator",
    "SpecEmitter",
    "CostModel",
    "DEFAULT_COST_MODEL",
]

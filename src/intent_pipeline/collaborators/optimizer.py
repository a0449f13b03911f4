"""Heuristic workflow optimization."""

from __future__ import annotations

import logging

from intent_pipeline.core.models import (
    ConsultingAnalysis,
    EfficiencyGains,
    Optimization,
    OptimizedWorkflow,
    ParsedIntent,
    SavingsEstimate,
    Workflow,
)
from intent_pipeline.pipeline.report import savings_percentage

from .costs import DEFAULT_COST_MODEL, CostModel, apply_optimizations, forecast_workflow

log = logging.getLogger(__name__)


class WorkflowOptimizer:
    """Proposes caching, batching, decomposition and structured-call rewrites.

    The step list itself is left untouched; optimizations describe unit
    savings that the forecaster applies on top of the naive estimate.
    """

    def __init__(self, cost_model: CostModel = DEFAULT_COST_MODEL):
        self.cost_model = cost_model

    def optimize(
        self, intent: ParsedIntent, analysis: ConsultingAnalysis
    ) -> OptimizedWorkflow:
        workflow = Workflow.from_intent(intent)
        optimizations = self._propose(workflow, analysis)

        naive = forecast_workflow(workflow, model=self.cost_model)
        optimized = apply_optimizations(naive, optimizations, model=self.cost_model)
        gains = EfficiencyGains(
            units_a_reduction=naive.units_a_consumed - optimized.units_a_consumed,
            units_b_reduction=naive.units_b_consumed - optimized.units_b_consumed,
            cost_savings=round(naive.estimated_cost - optimized.estimated_cost, 4),
            total_savings_percentage=savings_percentage(naive, optimized),
        )
        log.debug(
            "Proposed %d optimization(s) for %s, %s%% savings",
            len(optimizations),
            workflow.id,
            gains.total_savings_percentage,
        )
        return OptimizedWorkflow(
            workflow=workflow,
            optimizations=optimizations,
            efficiency_gains=gains,
            original_workflow=workflow,
            cost_ceiling=intent.cost_ceiling,
        )

    @staticmethod
    def _propose(
        workflow: Workflow, analysis: ConsultingAnalysis
    ) -> tuple[Optimization, ...]:
        steps = workflow.steps
        retrieval = tuple(s.id for s in steps if s.type == "data_retrieval")
        processing = tuple(s.id for s in steps if s.type == "processing")
        analytical = tuple(s.id for s in steps if s.type == "analysis")

        proposals: list[Optimization] = []
        if retrieval:
            proposals.append(
                Optimization(
                    type="caching",
                    description="Cache results of repeated data retrieval",
                    steps_affected=retrieval,
                    estimated_savings=SavingsEstimate(units_a=30, percentage=30),
                )
            )
        if len(processing) >= 2:
            proposals.append(
                Optimization(
                    type="batching",
                    description="Batch related processing steps into single calls",
                    steps_affected=processing,
                    estimated_savings=SavingsEstimate(
                        units_a=20, units_b=20, percentage=20
                    ),
                )
            )
        if analytical:
            proposals.append(
                Optimization(
                    type="vibe_to_spec",
                    description="Replace free-form analysis with structured specs",
                    steps_affected=analytical,
                    estimated_savings=SavingsEstimate(units_a=40, percentage=25),
                )
            )
        if len(steps) > 5 and analysis.implementation_complexity != "low":
            proposals.append(
                Optimization(
                    type="decomposition",
                    description="Decompose the workflow into independent sub-flows",
                    steps_affected=tuple(s.id for s in steps),
                    estimated_savings=SavingsEstimate(
                        units_a=10, units_b=10, percentage=10
                    ),
                )
            )
        return tuple(proposals)

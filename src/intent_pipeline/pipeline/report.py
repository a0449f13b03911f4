"""Efficiency report derived from a completed run's ROI scenarios.

This is a projection of values already computed. It never calls a
collaborator.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from intent_pipeline.core.models import EfficiencyReport

if TYPE_CHECKING:
    from intent_pipeline.core.models import OptimizedWorkflow, QuotaForecast, ROIAnalysis


def savings_percentage(baseline: QuotaForecast, optimized: QuotaForecast) -> float:
    """Whole-number percentage by which `optimized` undercuts `baseline` on cost.

    Halves round up. A zero-cost baseline yields 0.
    """
    if baseline.estimated_cost == 0:
        return 0
    ratio = (baseline.estimated_cost - optimized.estimated_cost) / baseline.estimated_cost
    return math.floor(ratio * 100 + 0.5)


def derive_efficiency_report(
    roi: ROIAnalysis, workflow: OptimizedWorkflow | None = None
) -> EfficiencyReport:
    """Compare the conservative baseline with the balanced scenario.

    When either scenario is missing, the balanced scenario's own savings
    percentage is used. Savings are never reported below zero.
    """
    conservative = roi.scenario("conservative")
    balanced = roi.scenario("balanced")
    naive = conservative.forecast if conservative else None
    optimized = balanced.forecast if balanced else None

    if naive is not None and optimized is not None:
        percentage = savings_percentage(naive, optimized)
        cost_savings = round(naive.estimated_cost - optimized.estimated_cost, 4)
    else:
        percentage = balanced.savings_percentage if balanced else 0
        cost_savings = 0

    notes: list[str] = []
    if workflow is not None:
        notes.extend(opt.description for opt in workflow.optimizations)
    notes.extend(roi.recommendations)

    return EfficiencyReport(
        naive_consumption=naive,
        optimized_consumption=optimized,
        savings_percentage=max(0, percentage),
        cost_savings=max(0, cost_savings),
        optimization_notes=tuple(notes),
    )

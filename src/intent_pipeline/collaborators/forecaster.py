"""Quota forecasting and the three-scenario ROI table."""

from __future__ import annotations

import dataclasses
import logging

from intent_pipeline.core.models import (
    ConsultingAnalysis,
    OptimizationScenario,
    OptimizedWorkflow,
    ROIAnalysis,
)
from intent_pipeline.pipeline.report import savings_percentage

from .costs import (
    DEFAULT_COST_MODEL,
    CostModel,
    apply_optimizations,
    cap_forecast,
    forecast_workflow,
    scale_forecast,
)

log = logging.getLogger(__name__)

# Bold is only recommended when it beats Balanced by at least this margin
BOLD_MARGIN = 15


class QuotaForecaster:
    """Forecasts naive, optimized and zero-based consumption.

    Scenario savings are expressed relative to the naive (conservative)
    baseline.
    """

    def __init__(self, cost_model: CostModel = DEFAULT_COST_MODEL):
        self.cost_model = cost_model

    def forecast(
        self, workflow: OptimizedWorkflow, analysis: ConsultingAnalysis
    ) -> ROIAnalysis:
        naive = forecast_workflow(workflow.original_workflow, model=self.cost_model)
        optimized = apply_optimizations(
            forecast_workflow(workflow.workflow, model=self.cost_model),
            workflow.optimizations,
            model=self.cost_model,
        )
        if analysis.zero_based_savings:
            bold_forecast = scale_forecast(
                optimized, analysis.zero_based_savings, model=self.cost_model
            )
        else:
            bold_forecast = optimized
        ceiling = workflow.cost_ceiling
        uncapped = optimized
        optimized = cap_forecast(optimized, ceiling, model=self.cost_model)
        bold_forecast = cap_forecast(bold_forecast, ceiling, model=self.cost_model)

        scenarios = (
            OptimizationScenario(
                name="Conservative",
                forecast=naive,
                savings_percentage=0,
                implementation_effort="none",
                risk_level="none",
            ),
            OptimizationScenario(
                name="Balanced",
                forecast=optimized,
                savings_percentage=savings_percentage(naive, optimized),
                implementation_effort="medium",
                risk_level="low",
            ),
            OptimizationScenario(
                name="Bold",
                forecast=bold_forecast,
                savings_percentage=savings_percentage(naive, bold_forecast),
                implementation_effort="high",
                risk_level="medium",
            ),
        )
        roi = self.roi_table(scenarios)
        if optimized.estimated_cost < uncapped.estimated_cost:
            log.info(
                "Cost ceiling lowered the balanced forecast from %s to %s",
                uncapped.estimated_cost,
                optimized.estimated_cost,
            )
            note = (
                f"Cost ceiling applied: balanced forecast limited to "
                f"{optimized.units_a_consumed:g} units A, "
                f"{optimized.units_b_consumed:g} units B "
                f"({optimized.estimated_cost:.2f})"
            )
            roi = dataclasses.replace(roi, recommendations=(*roi.recommendations, note))
        return roi

    @staticmethod
    def roi_table(scenarios: tuple[OptimizationScenario, ...]) -> ROIAnalysis:
        """Pick the recommended option and phrase the recommendations."""
        by_name = {s.name: s for s in scenarios}
        balanced = by_name.get("Balanced")
        bold = by_name.get("Bold")

        best = "Conservative"
        if balanced is not None and balanced.savings_percentage > 0:
            best = "Balanced"
        if bold is not None and bold.savings_percentage >= (
            (balanced.savings_percentage if balanced else 0) + BOLD_MARGIN
        ):
            best = "Bold"

        recommendations = []
        for scenario in scenarios:
            if scenario.savings_percentage > 0:
                recommendations.append(
                    f"{scenario.name}: save {scenario.savings_percentage:.0f}% "
                    f"at {scenario.implementation_effort} effort and "
                    f"{scenario.risk_level} risk"
                )
        if not recommendations:
            recommendations.append("Keep the current workflow; no material savings found")

        log.debug("ROI table built, best option %s", best)
        return ROIAnalysis(
            scenarios=scenarios,
            recommendations=tuple(recommendations),
            best_option=best,
            risk_assessment=_risk_assessment(best),
        )


def _risk_assessment(best: str) -> str:
    return {
        "Conservative": "No change in risk; savings are not material",
        "Balanced": "Low risk with moderate savings potential",
        "Bold": "Medium risk with maximum savings potential",
    }[best]

"""Quota cost model shared by the optimizer and the forecaster.

Two quota units exist: units A (free-form calls) and units B (structured
calls). Each workflow step consumes a fixed mix of both depending on its
type and quota cost.
"""

from __future__ import annotations

import dataclasses
import math
import typing

from intent_pipeline.core.models import (
    Optimization,
    QuotaBreakdown,
    QuotaForecast,
    Workflow,
    WorkflowStep,
)

if typing.TYPE_CHECKING:
    from intent_pipeline.core.options import CostCeiling


@dataclasses.dataclass(frozen=True, slots=True)
class CostModel:
    """Currency price of one unit of each quota type."""

    unit_a_cost: float = 0.01
    unit_b_cost: float = 0.05

    def price(self, units_a: float, units_b: float) -> float:
        return round(units_a * self.unit_a_cost + units_b * self.unit_b_cost, 4)


DEFAULT_COST_MODEL = CostModel()


def step_units(step: WorkflowStep) -> tuple[int, int]:
    """Units (A, B) a single step consumes when run without optimization."""
    cost = max(0, math.ceil(step.quota_cost))
    match step.type:
        case "vibe":
            return 1, 0
        case "spec":
            return 0, 1
        case "data_retrieval":
            return max(1, cost), 0
        case "processing":
            return max(0, cost - 1), 1
        case "analysis":
            return (0, 1) if cost >= 4 else (max(2, cost), 0)
    return max(1, cost), 0


def forecast_workflow(
    workflow: Workflow,
    scenario: typing.Literal["naive", "optimized", "zero-based"] = "naive",
    model: CostModel = DEFAULT_COST_MODEL,
) -> QuotaForecast:
    """Per-step consumption of `workflow` with no optimizations applied."""
    breakdown = []
    for step in workflow.steps:
        units_a, units_b = step_units(step)
        breakdown.append(
            QuotaBreakdown(
                step_id=step.id,
                step_description=step.description,
                units_a=units_a,
                units_b=units_b,
                cost=model.price(units_a, units_b),
            )
        )
    total_a = sum(b.units_a for b in breakdown)
    total_b = sum(b.units_b for b in breakdown)
    if workflow.estimated_complexity > 8:
        confidence: typing.Literal["low", "medium", "high"] = "low"
    elif workflow.estimated_complexity < 4:
        confidence = "high"
    else:
        confidence = "medium"
    return QuotaForecast(
        units_a_consumed=total_a,
        units_b_consumed=total_b,
        estimated_cost=model.price(total_a, total_b),
        confidence_level=confidence,
        scenario=scenario,
        breakdown=tuple(breakdown),
    )


def apply_optimizations(
    forecast: QuotaForecast,
    optimizations: typing.Iterable[Optimization],
    model: CostModel = DEFAULT_COST_MODEL,
) -> QuotaForecast:
    """Reduce totals by each optimization's unit savings, in order."""
    units_a = forecast.units_a_consumed
    units_b = forecast.units_b_consumed
    for optimization in optimizations:
        savings = optimization.estimated_savings
        units_a = max(0, units_a - math.floor(units_a * savings.units_a / 100))
        units_b = max(0, units_b - math.floor(units_b * savings.units_b / 100))
    return dataclasses.replace(
        forecast,
        units_a_consumed=units_a,
        units_b_consumed=units_b,
        estimated_cost=model.price(units_a, units_b),
        scenario="optimized",
    )


def scale_forecast(
    forecast: QuotaForecast, savings_pct: float, model: CostModel = DEFAULT_COST_MODEL
) -> QuotaForecast:
    """Zero-based projection: every unit count cut by `savings_pct` percent."""
    factor = max(0.0, 1 - savings_pct / 100)
    units_a = math.floor(forecast.units_a_consumed * factor)
    units_b = math.floor(forecast.units_b_consumed * factor)
    return dataclasses.replace(
        forecast,
        units_a_consumed=units_a,
        units_b_consumed=units_b,
        estimated_cost=model.price(units_a, units_b),
        scenario="zero-based",
    )


# Ceilings below any of these leave too little room for a reliable estimate
TIGHT_UNITS_A = 10
TIGHT_UNITS_B = 3
TIGHT_COST = 5

_LOWER_CONFIDENCE: dict[str, typing.Literal["low", "medium", "high"]] = {
    "high": "medium",
    "medium": "low",
    "low": "low",
}


def _whole_units(value: float) -> int:
    return math.floor(round(value, 6))


def cap_forecast(
    forecast: QuotaForecast,
    ceiling: CostCeiling | None,
    model: CostModel = DEFAULT_COST_MODEL,
) -> QuotaForecast:
    """Clamp a forecast to a cost ceiling.

    Unit caps apply first. A currency cap then trims units A, and units B
    only when the B units alone exceed it. In that case one unit A is kept
    if any were forecast. Tight ceilings lower the confidence one step.
    """
    if ceiling is None:
        return forecast
    units_a = forecast.units_a_consumed
    units_b = forecast.units_b_consumed
    if ceiling.max_units_a is not None:
        units_a = min(units_a, _whole_units(ceiling.max_units_a))
    if ceiling.max_units_b is not None:
        units_b = min(units_b, _whole_units(ceiling.max_units_b))

    target = ceiling.max_cost_currency
    if target is not None and model.price(units_a, units_b) > target:
        b_cost = units_b * model.unit_b_cost
        if b_cost <= target:
            units_a = max(0, _whole_units((target - b_cost) / model.unit_a_cost))
        else:
            units_b = max(0, _whole_units(target / model.unit_b_cost))
            remaining = target - units_b * model.unit_b_cost
            units_a = min(units_a, max(1, _whole_units(remaining / model.unit_a_cost)))

    confidence = forecast.confidence_level
    tight = (
        (ceiling.max_units_a is not None and ceiling.max_units_a < TIGHT_UNITS_A)
        or (ceiling.max_units_b is not None and ceiling.max_units_b < TIGHT_UNITS_B)
        or (target is not None and target < TIGHT_COST)
    )
    if tight:
        confidence = _LOWER_CONFIDENCE[confidence]
    return dataclasses.replace(
        forecast,
        units_a_consumed=units_a,
        units_b_consumed=units_b,
        estimated_cost=model.price(units_a, units_b),
        confidence_level=confidence,
    )

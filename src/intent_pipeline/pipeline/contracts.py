"""The six stage contracts, in execution order.

Recoverability per stage:

    stage          collaborator failure   degenerate output
    intent         fatal                  fallback
    analysis       fallback               fallback
    optimization   fallback               fallback
    forecasting    fallback               fallback
    summary        fatal                  fallback
    spec           fatal                  fallback
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any, cast

from intent_pipeline.core.types import StageName
from intent_pipeline.pipeline import validators
from intent_pipeline.pipeline.base import StageContract
from intent_pipeline.pipeline.fallbacks import FALLBACK_FACTORIES

if TYPE_CHECKING:
    from intent_pipeline.core.models import ConsultingAnalysis, ParsedIntent
    from intent_pipeline.pipeline.base import Collaborators, StageState


def _parse(c: Collaborators, s: StageState) -> Any:
    return c.parse(s.intent.text, s.intent.options)


def _analyze(c: Collaborators, s: StageState) -> Any:
    return c.analyze(s.parsed)  # type: ignore[arg-type]


def _optimize(c: Collaborators, s: StageState) -> Any:
    return c.optimize(s.parsed, s.analysis)  # type: ignore[arg-type]


def _forecast(c: Collaborators, s: StageState) -> Any:
    return c.forecast(s.workflow, s.analysis)  # type: ignore[arg-type]


def _summarize(c: Collaborators, s: StageState) -> Any:
    analysis = cast("ConsultingAnalysis", s.analysis)
    return c.summarize(analysis, analysis.techniques_used)


def _emit(c: Collaborators, s: StageState) -> Any:
    parsed = cast("ParsedIntent", s.parsed)
    return c.emit_spec(
        s.workflow,  # type: ignore[arg-type]
        s.summary,  # type: ignore[arg-type]
        s.roi,  # type: ignore[arg-type]
        parsed.business_objective,
    )


PARSE = StageContract(
    name=StageName.INTENT,
    call=_parse,
    store=lambda s, v: dataclasses.replace(s, parsed=v),
    output_validator=validators.validate_parsed_intent,
    suggested_action=(
        "Rephrase the intent with a clear objective and the operations it needs"
    ),
    recoverable=False,
    fallback=FALLBACK_FACTORIES[StageName.INTENT],
    quota_cost=1,
)

ANALYZE = StageContract(
    name=StageName.ANALYSIS,
    call=_analyze,
    store=lambda s, v: dataclasses.replace(s, analysis=v),
    input_validator=validators.require_parsed,
    output_validator=validators.validate_analysis,
    suggested_action="Retry the request or simplify the intent",
    fallback=FALLBACK_FACTORIES[StageName.ANALYSIS],
    quota_cost=2,
)

OPTIMIZE = StageContract(
    name=StageName.OPTIMIZATION,
    call=_optimize,
    store=lambda s, v: dataclasses.replace(s, workflow=v),
    input_validator=validators.require_parsed_and_analysis,
    output_validator=validators.validate_optimized_workflow,
    suggested_action="Review the workflow steps and try again",
    fallback=FALLBACK_FACTORIES[StageName.OPTIMIZATION],
    quota_cost=1,
)

FORECAST = StageContract(
    name=StageName.FORECASTING,
    call=_forecast,
    store=lambda s, v: dataclasses.replace(s, roi=v),
    input_validator=validators.require_workflow_and_analysis,
    output_validator=validators.validate_roi,
    suggested_action="Retry the request or lower the expected load",
    fallback=FALLBACK_FACTORIES[StageName.FORECASTING],
    quota_cost=2,
)

SUMMARIZE = StageContract(
    name=StageName.SUMMARY,
    call=_summarize,
    store=lambda s, v: dataclasses.replace(s, summary=v),
    input_validator=validators.require_analysis,
    output_validator=validators.validate_summary,
    suggested_action="Retry with fewer techniques",
    recoverable=False,
    fallback=FALLBACK_FACTORIES[StageName.SUMMARY],
    quota_cost=1,
)

EMIT_SPEC = StageContract(
    name=StageName.SPEC,
    call=_emit,
    store=lambda s, v: dataclasses.replace(s, artifact=v),
    input_validator=validators.require_emit_inputs,
    output_validator=validators.validate_artifact,
    suggested_action=(
        "Review optimization results and try again; "
        "consider simplifying the workflow structure"
    ),
    recoverable=False,
    fallback=FALLBACK_FACTORIES[StageName.SPEC],
    quota_cost=1,
)

DEFAULT_CONTRACTS: tuple[StageContract, ...] = (
    PARSE,
    ANALYZE,
    OPTIMIZE,
    FORECAST,
    SUMMARIZE,
    EMIT_SPEC,
)

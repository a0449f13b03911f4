"""Behavioral tests for the pipeline orchestrator.

Collaborators are the deterministic defaults unless a test scripts a
specific method. Retries never wait: the orchestrator gets a fake sleep.
"""

import asyncio
import dataclasses

import pytest

from intent_pipeline.collaborators import DefaultCollaborators
from intent_pipeline.config import FrozenConfig
from intent_pipeline.core.exceptions import (
    InvariantViolationError,
    StageContractError,
    TransientStageError,
)
from intent_pipeline.core.models import (
    ConsultingAnalysis,
    ConsultingSummary,
    EfficiencyGains,
    Optimization,
    OptimizedWorkflow,
    ParsedIntent,
    Workflow,
)
from intent_pipeline.core.types import (
    PipelineFailure,
    PipelineSuccess,
    StageLogEntry,
    StageName,
)
from intent_pipeline.orchestrator import (
    PipelineOrchestrator,
    create_orchestrator,
    run_intent,
)
from intent_pipeline.pipeline import CancellationToken
from intent_pipeline.pipeline.contracts import ANALYZE, PARSE
from intent_pipeline.pipeline.fallbacks import (
    DEFAULT_OPERATION,
    DEFAULT_RECOMMENDATION,
    GENERIC_TASK,
)
from intent_pipeline.telemetry import NULL_SINK

pytestmark = pytest.mark.unit

ALL_STAGES = tuple(StageName)


def _outcomes(ctx, stage):
    return [e.outcome for e in ctx.entries_for(stage)]


# --- Composition ---


def test_default_pipeline_runs_six_stages_in_order():
    orchestrator = PipelineOrchestrator(FrozenConfig())
    assert orchestrator.stage_names == (
        "intent",
        "analysis",
        "optimization",
        "forecasting",
        "summary",
        "spec",
    )


def test_empty_contract_list_is_rejected():
    with pytest.raises(ValueError, match="may not be empty"):
        PipelineOrchestrator(FrozenConfig(), contracts=())


def test_out_of_order_contracts_are_rejected():
    with pytest.raises(ValueError, match="stage order"):
        PipelineOrchestrator(FrozenConfig(), contracts=(ANALYZE, PARSE))


def test_disabled_telemetry_uses_the_null_sink():
    orchestrator = create_orchestrator(FrozenConfig(telemetry_enabled=False))
    assert orchestrator._sink is NULL_SINK  # accessing internal for contract check


# --- Entry preconditions ---


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "raw",
    ["", "   \n\t", "a", "short", "hello", None, 42, ["not", "text"], "x" * 5001],
)
async def test_invalid_intents_fail_validation_without_calling_collaborators(
    make_orchestrator, collaborators, raw
):
    outcome = await make_orchestrator().run(raw)

    assert isinstance(outcome, PipelineFailure)
    assert outcome.success is False
    assert outcome.error.stage == "intent"
    assert outcome.error.kind == "validation_failed"
    assert outcome.error.suggested_action.strip()
    assert outcome.error.session_id == outcome.context.session_id
    assert outcome.context.entries == ()
    assert sum(collaborators.calls.values()) == 0


@pytest.mark.asyncio
async def test_placeholder_word_is_rejected_even_when_long_enough(make_orchestrator):
    outcome = await make_orchestrator(min_intent_length=2).run("  hello  ")

    assert outcome.error.kind == "validation_failed"


@pytest.mark.asyncio
async def test_malformed_options_fail_validation(make_orchestrator, auth_intent):
    outcome = await make_orchestrator().run(auth_intent, {"expectedLoad": -5})

    assert outcome.success is False
    assert outcome.error.kind == "validation_failed"
    assert "expectedLoad" in outcome.error.suggested_action


@pytest.mark.asyncio
async def test_unknown_option_keys_fail_validation(make_orchestrator, auth_intent):
    outcome = await make_orchestrator().run(auth_intent, {"turbo": True})

    assert outcome.error.kind == "validation_failed"


@pytest.mark.asyncio
async def test_camel_case_options_are_accepted(make_orchestrator, auth_intent):
    outcome = await make_orchestrator().run(
        auth_intent, {"expectedLoad": 5000, "performanceSensitivity": "high"}
    )

    assert outcome.success is True


@pytest.mark.asyncio
async def test_documented_config_shape_reaches_the_parser(
    make_orchestrator, collaborators, auth_intent
):
    config = {
        "expectedLoad": 5000,
        "costCeiling": {"maxUnitsA": 40, "maxUnitsB": 6, "maxCostCurrency": 12.5},
        "performanceSensitivity": "high",
    }

    outcome = await make_orchestrator().run(auth_intent, config)

    assert outcome.success is True
    _, options = collaborators.received["parse"]
    assert options.expected_load == 5000
    assert options.cost_ceiling.max_cost_currency == 12.5
    assert options.performance_sensitivity == "high"
    workflow, _ = collaborators.received["forecast"]
    assert workflow.cost_ceiling == options.cost_ceiling


# --- Happy path ---


@pytest.mark.asyncio
async def test_auth_intent_produces_artifact_and_report(make_orchestrator, auth_intent):
    outcome = await make_orchestrator().run(auth_intent)

    assert isinstance(outcome, PipelineSuccess)
    assert len(outcome.artifact.tasks) > 0
    assert outcome.efficiency_report.savings_percentage >= 0
    assert outcome.efficiency_report.cost_savings >= 0
    assert not outcome.context.degraded


@pytest.mark.asyncio
async def test_every_stage_logs_exactly_one_ok_entry(make_orchestrator, auth_intent):
    outcome = await make_orchestrator().run(auth_intent)
    ctx = outcome.context

    assert [e.stage for e in ctx.entries] == list(ALL_STAGES)
    assert all(e.outcome == "ok" and e.attempt == 1 for e in ctx.entries)
    assert all(e.duration_ms >= 0 for e in ctx.entries)


@pytest.mark.asyncio
async def test_quota_is_charged_per_stage(make_orchestrator, auth_intent):
    outcome = await make_orchestrator().run(auth_intent)

    assert outcome.context.quota_used == 8


@pytest.mark.asyncio
async def test_async_collaborators_are_awaited(make_orchestrator, auth_intent):
    class AsyncAnalysis(DefaultCollaborators):
        async def analyze(self, intent):
            await asyncio.sleep(0)
            return super().analyze(intent)

    outcome = await make_orchestrator(AsyncAnalysis()).run(auth_intent)

    assert outcome.success is True
    assert _outcomes(outcome.context, StageName.ANALYSIS) == ["ok"]


def test_run_intent_wraps_the_async_api(auth_intent):
    outcome = run_intent(auth_intent, config=FrozenConfig(telemetry_enabled=False))

    assert outcome.success is True


# --- Degradation and fallbacks ---


@pytest.mark.asyncio
async def test_zero_techniques_are_replaced_by_one_default(
    make_orchestrator, collaborators, sink, auth_intent
):
    collaborators.script(
        "analyze",
        ConsultingAnalysis(techniques_used=(), key_findings=(), total_quota_savings=0),
    )

    outcome = await make_orchestrator().run(auth_intent)

    assert outcome.success is True
    assert outcome.context.is_degraded(StageName.ANALYSIS)
    _, techniques = collaborators.received["summarize"]
    assert len(techniques) == 1
    assert techniques[0].name == "MECE"
    analysis_records = [
        r for r in sink.for_session(outcome.context.session_id) if r.stage == "analysis"
    ]
    assert [r.outcome for r in analysis_records] == ["degraded"]


@pytest.mark.asyncio
async def test_intent_without_operations_gets_default_operation(
    make_orchestrator, collaborators, auth_intent
):
    collaborators.script(
        "parse", ParsedIntent(business_objective="user authentication system")
    )

    outcome = await make_orchestrator().run(auth_intent)

    assert outcome.success is True
    assert outcome.context.is_degraded(StageName.INTENT)
    parsed, _ = collaborators.received["optimize"]
    assert parsed.operations_required == (DEFAULT_OPERATION,)


@pytest.mark.asyncio
async def test_negative_efficiency_gain_falls_back_to_caching(
    make_orchestrator, collaborators, auth_intent
):
    def losing(intent, analysis):
        workflow = Workflow.from_intent(intent)
        return OptimizedWorkflow(
            workflow=workflow,
            optimizations=(
                Optimization(type="batching", description="x", steps_affected=()),
            ),
            efficiency_gains=EfficiencyGains(total_savings_percentage=-12),
            original_workflow=workflow,
        )

    collaborators.script("optimize", losing)

    outcome = await make_orchestrator().run(auth_intent)

    assert outcome.success is True
    workflow, _ = collaborators.received["forecast"]
    assert workflow.efficiency_gain == 10
    assert [o.type for o in workflow.optimizations] == ["caching"]


@pytest.mark.asyncio
async def test_forecaster_failure_uses_fallback_roi_table(
    make_orchestrator, collaborators, auth_intent
):
    collaborators.script("forecast", RuntimeError("forecast service down"))

    outcome = await make_orchestrator().run(auth_intent)

    assert outcome.success is True
    assert outcome.context.is_degraded(StageName.FORECASTING)
    assert collaborators.calls["forecast"] == 1
    assert outcome.efficiency_report.savings_percentage == 20
    assert outcome.artifact.roi_analysis.best_option == "Balanced"


@pytest.mark.asyncio
async def test_spec_without_tasks_gets_generic_task(
    make_orchestrator, collaborators, auth_intent
):
    def taskless(workflow, summary, roi, objective):
        artifact = DefaultCollaborators().emit_spec(workflow, summary, roi, objective)
        return dataclasses.replace(artifact, tasks=())

    collaborators.script("emit_spec", taskless)

    outcome = await make_orchestrator().run(auth_intent)

    assert outcome.success is True
    assert outcome.artifact.tasks == (GENERIC_TASK,)
    assert GENERIC_TASK.description in outcome.artifact.document


# --- Retry ---


@pytest.mark.asyncio
async def test_transient_failure_is_retried_then_succeeds(
    make_orchestrator, collaborators, fake_sleep, auth_intent
):
    collaborators.script(
        "analyze", TransientStageError("rate limited"), collaborators.CALL_THROUGH
    )

    outcome = await make_orchestrator().run(auth_intent)

    assert outcome.success is True
    assert collaborators.calls["analyze"] == 2
    entries = outcome.context.entries_for(StageName.ANALYSIS)
    assert [(e.attempt, e.outcome) for e in entries] == [(1, "retry"), (2, "ok")]
    assert fake_sleep.delays == [0.25]
    assert not outcome.context.degraded


@pytest.mark.asyncio
async def test_exhausted_retries_fall_back_on_recoverable_stage(
    make_orchestrator, collaborators, fake_sleep, auth_intent
):
    collaborators.script("analyze", ConnectionError("reset by peer"))

    outcome = await make_orchestrator(max_attempts=3).run(auth_intent)

    assert outcome.success is True
    assert collaborators.calls["analyze"] == 3
    entries = outcome.context.entries_for(StageName.ANALYSIS)
    assert [(e.attempt, e.outcome) for e in entries] == [
        (1, "retry"),
        (2, "retry"),
        (3, "degraded"),
    ]
    assert len(fake_sleep.delays) == 2


@pytest.mark.asyncio
async def test_exhausted_retries_abort_on_intent_stage(
    make_orchestrator, collaborators, auth_intent
):
    collaborators.script("parse", TransientStageError("parser unavailable"))

    outcome = await make_orchestrator(max_attempts=2).run(auth_intent)

    assert outcome.success is False
    assert outcome.error.stage == "intent"
    assert outcome.error.kind == "intent_failed"
    assert "parser unavailable" in outcome.error.message
    assert collaborators.calls["parse"] == 2


@pytest.mark.asyncio
async def test_non_transient_failure_is_not_retried(
    make_orchestrator, collaborators, fake_sleep, auth_intent
):
    collaborators.script("optimize", ValueError("bad heuristic"))

    outcome = await make_orchestrator().run(auth_intent)

    assert outcome.success is True
    assert collaborators.calls["optimize"] == 1
    assert fake_sleep.delays == []
    assert _outcomes(outcome.context, StageName.OPTIMIZATION) == ["degraded"]


@pytest.mark.asyncio
async def test_degenerate_output_is_not_retried(
    make_orchestrator, collaborators, auth_intent
):
    collaborators.script(
        "analyze",
        ConsultingAnalysis(techniques_used=(), key_findings=(), total_quota_savings=0),
    )

    await make_orchestrator().run(auth_intent)

    assert collaborators.calls["analyze"] == 1


@pytest.mark.asyncio
async def test_slow_collaborator_times_out_and_falls_back(
    make_orchestrator, auth_intent
):
    class Slow(DefaultCollaborators):
        async def analyze(self, intent):
            await asyncio.sleep(5)
            return super().analyze(intent)

    orchestrator = make_orchestrator(
        Slow(), max_attempts=1, stage_timeout_seconds=0.01
    )

    outcome = await orchestrator.run(auth_intent)

    assert outcome.success is True
    assert "TimeoutError" in outcome.context.degraded[StageName.ANALYSIS]


# --- Fatal errors ---


@pytest.mark.asyncio
async def test_summary_failure_is_reported_under_analysis(
    make_orchestrator, collaborators, auth_intent
):
    collaborators.script("summarize", RuntimeError("template overflow"))

    outcome = await make_orchestrator().run(auth_intent)

    assert outcome.success is False
    assert outcome.error.stage == "analysis"
    assert outcome.error.kind == "summary_failed"
    assert outcome.error.suggested_action == "Retry with fewer techniques"
    assert _outcomes(outcome.context, StageName.SUMMARY) == ["failed"]
    assert collaborators.calls["emit_spec"] == 0


@pytest.mark.asyncio
async def test_empty_summary_degrades_to_default_recommendation(
    make_orchestrator, collaborators, auth_intent
):
    collaborators.script(
        "summarize", ConsultingSummary(executive_summary="", recommendations=())
    )

    outcome = await make_orchestrator().run(auth_intent)

    assert outcome.success is True
    assert outcome.context.is_degraded(StageName.SUMMARY)
    assert _outcomes(outcome.context, StageName.SUMMARY) == ["degraded"]
    analysis, _ = collaborators.received["summarize"]
    summary = outcome.artifact.consulting_summary
    assert summary.executive_summary.startswith(
        f"Analysis using {len(analysis.techniques_used)} consulting techniques"
    )
    assert summary.recommendations[0].main_recommendation == DEFAULT_RECOMMENDATION
    assert collaborators.calls["emit_spec"] == 1


@pytest.mark.asyncio
async def test_blank_objective_is_fatal(make_orchestrator, collaborators, auth_intent):
    collaborators.script("parse", ParsedIntent(business_objective="  "))

    outcome = await make_orchestrator().run(auth_intent)

    assert outcome.error.stage == "intent"
    assert outcome.error.kind == "intent_failed"
    assert collaborators.calls["analyze"] == 0


@pytest.mark.asyncio
async def test_spec_failure_carries_no_artifact(
    make_orchestrator, collaborators, auth_intent
):
    collaborators.script("emit_spec", RuntimeError("renderer crashed"))

    outcome = await make_orchestrator().run(auth_intent)

    assert isinstance(outcome, PipelineFailure)
    assert outcome.error.stage == "spec"
    assert outcome.error.kind == "spec_failed"
    assert not hasattr(outcome, "artifact")


@pytest.mark.asyncio
async def test_workflow_without_steps_aborts_at_spec(
    make_orchestrator, collaborators, auth_intent
):
    empty = Workflow(id="workflow-empty", steps=())
    collaborators.script(
        "optimize",
        OptimizedWorkflow(
            workflow=empty,
            optimizations=(
                Optimization(type="caching", description="noop", steps_affected=()),
            ),
            efficiency_gains=EfficiencyGains(),
            original_workflow=empty,
        ),
    )

    outcome = await make_orchestrator().run(auth_intent)

    assert outcome.error.stage == "spec"
    assert outcome.error.kind == "spec_failed"
    assert collaborators.calls["emit_spec"] == 0


@pytest.mark.asyncio
async def test_wrong_output_type_is_a_pipeline_error(
    make_orchestrator, collaborators, auth_intent
):
    collaborators.script("optimize", "not a workflow")

    outcome = await make_orchestrator().run(auth_intent)

    assert outcome.error.stage == "optimization"
    assert outcome.error.kind == "pipeline_error"
    assert outcome.error.suggested_action.strip()


@pytest.mark.asyncio
async def test_contract_error_from_collaborator_is_fatal(
    make_orchestrator, collaborators, auth_intent
):
    collaborators.script(
        "forecast",
        StageContractError("no pricing table", suggested_action="Configure pricing"),
    )

    outcome = await make_orchestrator().run(auth_intent)

    assert outcome.error.stage == "forecasting"
    assert outcome.error.kind == "forecasting_failed"
    assert outcome.error.suggested_action == "Configure pricing"


# --- Cancellation ---


@pytest.mark.asyncio
async def test_cancelled_before_start(make_orchestrator, collaborators, auth_intent):
    token = CancellationToken()
    token.cancel()

    outcome = await make_orchestrator().run(auth_intent, cancel_token=token)

    assert outcome.error.kind == "cancelled"
    assert outcome.error.stage == "intent"
    assert outcome.context.entries == ()
    assert sum(collaborators.calls.values()) == 0


@pytest.mark.asyncio
async def test_cancellation_takes_effect_at_next_stage_boundary(
    make_orchestrator, collaborators, auth_intent
):
    token = CancellationToken()

    def analyze_then_cancel(intent):
        token.cancel("user navigated away")
        return DefaultCollaborators().analyze(intent)

    collaborators.script("analyze", analyze_then_cancel)

    outcome = await make_orchestrator().run(auth_intent, cancel_token=token)

    assert outcome.success is False
    assert outcome.error.kind == "cancelled"
    assert outcome.error.stage == "optimization"
    assert "user navigated away" in outcome.error.message
    assert _outcomes(outcome.context, StageName.ANALYSIS) == ["ok"]
    assert collaborators.calls["optimize"] == 0


# --- Run context invariants ---


@pytest.mark.asyncio
async def test_log_entries_are_monotonic(make_orchestrator, collaborators, auth_intent):
    collaborators.script(
        "forecast", TimeoutError("slow"), TimeoutError("slow"), collaborators.CALL_THROUGH
    )

    outcome = await make_orchestrator().run(auth_intent)
    entries = outcome.context.entries

    indices = [e.stage_index for e in entries]
    assert indices == sorted(indices)
    pairs = [(e.stage_index, e.attempt) for e in entries]
    assert len(pairs) == len(set(pairs))


@pytest.mark.asyncio
async def test_context_is_terminal_after_run(make_orchestrator, auth_intent):
    outcome = await make_orchestrator().run(auth_intent)
    ctx = outcome.context

    assert ctx.closed is True
    with pytest.raises(InvariantViolationError):
        ctx.record(
            StageLogEntry(
                stage=StageName.SPEC,
                attempt=2,
                started_at=ctx.started_at,
                duration_ms=0,
                outcome="ok",
            )
        )


@pytest.mark.asyncio
async def test_concurrent_runs_get_distinct_sessions_and_equal_artifacts(
    make_orchestrator, auth_intent
):
    orchestrator = make_orchestrator()

    first, second = await asyncio.gather(
        orchestrator.run(auth_intent), orchestrator.run(auth_intent)
    )

    assert first.success and second.success
    assert first.context.session_id != second.context.session_id
    assert first.artifact == second.artifact


# --- Telemetry and metrics ---


@pytest.mark.asyncio
async def test_sink_receives_start_stage_and_completion_records(
    make_orchestrator, sink, auth_intent
):
    outcome = await make_orchestrator().run(auth_intent)
    records = sink.for_session(outcome.context.session_id)

    assert records[0].stage == "pipeline"
    assert records[0].level == "DEBUG"
    assert [r.stage for r in records[1:-1]] == [s.value for s in ALL_STAGES]
    final = records[-1]
    assert final.level == "INFO"
    assert final.details["quotaUsed"] == 8
    assert final.details["degradedStages"] == []
    assert {r.session_id for r in records} == {outcome.context.session_id}


@pytest.mark.asyncio
async def test_failure_record_carries_the_error(make_orchestrator, sink):
    outcome = await make_orchestrator().run("")
    final = sink.for_session(outcome.context.session_id)[-1]

    assert final.level == "ERROR"
    assert final.details["error"]["kind"] == "validation_failed"


@pytest.mark.asyncio
async def test_failing_sink_does_not_break_the_run(
    collaborators, metrics, fake_sleep, auth_intent, caplog
):
    class ExplodingSink:
        def record(self, entry):
            raise OSError("disk full")

    orchestrator = PipelineOrchestrator(
        FrozenConfig(),
        collaborators,
        sink=ExplodingSink(),
        metrics=metrics,
        sleep=fake_sleep,
    )

    outcome = await orchestrator.run(auth_intent)

    assert outcome.success is True
    assert "disk full" in caplog.text


@pytest.mark.asyncio
async def test_metrics_count_runs_and_errors(make_orchestrator, metrics, auth_intent):
    orchestrator = make_orchestrator()

    await orchestrator.run(auth_intent)
    await orchestrator.run("")

    assert metrics.request_count == 2
    assert metrics.error_count == 1
    assert metrics.error_rate == 50.0

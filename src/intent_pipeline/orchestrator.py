"""The primary user-facing entry point for the pipeline.

The orchestrator drives one intent through the six stage contracts in order.
For every stage it checks the input, calls the collaborator through the
retry policy, validates the output and either continues, substitutes a
fallback or aborts. `run` always returns a `PipelineOutcome`; no exception
crosses its boundary.

Telemetry note: each stage attempt is appended to the run's `RunContext`
and forwarded to the injected sink. The sink is write-only from the
orchestrator's point of view; nothing recorded there feeds back into a run.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
import inspect
import logging
from time import perf_counter
from typing import TYPE_CHECKING, Any

from intent_pipeline.collaborators import DefaultCollaborators
from intent_pipeline.config import FrozenConfig, resolve_config
from intent_pipeline.core.exceptions import (
    CancelledRunError,
    DegradedResultError,
    InvariantViolationError,
    StageContractError,
    ValidationError,
)
from intent_pipeline.core.options import Intent, coerce_options
from intent_pipeline.core.types import (
    Fatal,
    Ok,
    PipelineError,
    PipelineFailure,
    PipelineOutcome,
    PipelineSuccess,
    Recoverable,
    StageLogEntry,
    StageName,
    StageOutcome,
)
from intent_pipeline.pipeline.base import StageState
from intent_pipeline.pipeline.context import RunContext
from intent_pipeline.pipeline.contracts import DEFAULT_CONTRACTS
from intent_pipeline.pipeline.fallbacks import describe_cause, resolve_fallback
from intent_pipeline.pipeline.metrics import PipelineMetrics, get_default_metrics
from intent_pipeline.pipeline.report import derive_efficiency_report
from intent_pipeline.pipeline.retry import RetryPolicy, Sleep
from intent_pipeline.pipeline.validators import check_raw_intent
from intent_pipeline.telemetry import (
    Level,
    LoggingSink,
    TelemetryRecord,
    TelemetrySink,
    create_sink,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from intent_pipeline.core.options import PipelineOptions
    from intent_pipeline.pipeline.base import Collaborators, StageContract
    from intent_pipeline.pipeline.cancellation import CancellationToken

log = logging.getLogger(__name__)

PIPELINE_STAGE = "pipeline"

CANCELLED_ACTION = "Run the request again if the result is still needed"
INTERNAL_ERROR_ACTION = "Report this failure together with the session id"

_OUTCOME_LEVELS: dict[StageOutcome, Level] = {
    "ok": "INFO",
    "retry": "WARNING",
    "degraded": "WARNING",
    "failed": "ERROR",
}


class PipelineOrchestrator:
    """Runs raw intents through the fixed six-stage sequence.

    An orchestrator holds no per-run state, so one instance may serve any
    number of concurrent runs. The only state shared across runs is the
    increment-only `PipelineMetrics` instance.
    """

    def __init__(
        self,
        config: FrozenConfig,
        collaborators: Collaborators | None = None,
        *,
        contracts: Iterable[StageContract] | None = None,
        sink: TelemetrySink | None = None,
        metrics: PipelineMetrics | None = None,
        sleep: Sleep | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            config: Resolved, immutable pipeline configuration.
            collaborators: Business collaborators; defaults to the built-in
                deterministic implementations.
            contracts: Override the stage contracts (tests and introspection).
                Must be non-empty and in stage order.
            sink: Telemetry sink. Defaults to a `LoggingSink`, or the no-op
                sink when telemetry is disabled in `config`.
            metrics: Counters to update; defaults to the process-wide instance.
            sleep: Awaitable sleep used between retries.
        """
        self.config = config
        self._collaborators: Collaborators = collaborators or DefaultCollaborators()
        self._contracts = tuple(DEFAULT_CONTRACTS if contracts is None else contracts)
        if not self._contracts:
            raise ValueError("Pipeline may not be empty; provide at least one contract.")
        indices = [c.name.index for c in self._contracts]
        if indices != sorted(set(indices)):
            raise ValueError("Stage contracts must be unique and in stage order.")

        self._retry = RetryPolicy(
            max_attempts=config.max_attempts,
            delay=config.retry_delay_seconds,
            timeout=config.stage_timeout_seconds,
            sleep=sleep,
        )
        self._sink = (
            sink
            if sink is not None
            else create_sink(LoggingSink(), enabled=config.telemetry_enabled)
        )
        self._metrics = metrics if metrics is not None else get_default_metrics()

    @property
    def stage_names(self) -> tuple[str, ...]:
        """Return the pipeline's stage names in execution order."""
        return tuple(c.name.value for c in self._contracts)

    @property
    def metrics(self) -> PipelineMetrics:
        return self._metrics

    async def run(
        self,
        raw_intent: str,
        options: PipelineOptions | Mapping[str, Any] | None = None,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> PipelineOutcome:
        """Run one intent through every stage.

        Args:
            raw_intent: Free-text statement of intent.
            options: Optional run options, as a model or a plain mapping.
            cancel_token: Checked before each stage; never inside a call.

        Returns:
            `PipelineSuccess` with the artifact and efficiency report, or
            `PipelineFailure` carrying a `PipelineError`.
        """
        ctx = RunContext()
        self._emit(
            ctx,
            TelemetryRecord(
                level="DEBUG",
                session_id=ctx.session_id,
                stage=PIPELINE_STAGE,
                message="Pipeline run started",
            ),
        )
        try:
            return await self._run(ctx, raw_intent, options, cancel_token)
        except Exception as e:
            log.error("Unexpected pipeline failure in %s", ctx.session_id, exc_info=True)
            stage = ctx.current_stage.error_stage if ctx.current_stage else "intent"
            error = PipelineError(
                stage=stage,
                kind="pipeline_error",
                message=str(e) or type(e).__name__,
                suggested_action=INTERNAL_ERROR_ACTION,
                session_id=ctx.session_id,
            )
            if ctx.closed:
                return PipelineFailure(error=error, context=ctx)
            return self._fail(ctx, error)

    async def _run(
        self,
        ctx: RunContext,
        raw_intent: object,
        options: PipelineOptions | Mapping[str, Any] | None,
        cancel_token: CancellationToken | None,
    ) -> PipelineOutcome:
        try:
            text = check_raw_intent(raw_intent, self.config)
            intent = Intent(text=text, options=coerce_options(options))
        except ValidationError as e:
            return self._fail(
                ctx,
                PipelineError(
                    stage="intent",
                    kind="validation_failed",
                    message=str(e),
                    suggested_action=self._validation_action(e),
                    session_id=ctx.session_id,
                ),
            )

        state = StageState(intent=intent)
        for contract in self._contracts:
            if cancel_token is not None and cancel_token.cancelled:
                return self._fail(
                    ctx,
                    self._stage_error(contract, CancelledRunError(cancel_token.reason), ctx),
                )
            result = await self._run_stage(ctx, contract, state)
            if isinstance(result, PipelineError):
                return self._fail(ctx, result)
            state = result

        if state.artifact is None or state.roi is None:
            raise InvariantViolationError(
                "Pipeline ended without an artifact; the spec stage must run last.",
                stage_name=self._contracts[-1].name,
            )
        report = derive_efficiency_report(state.roi, state.workflow)
        return self._succeed(ctx, PipelineSuccess(state.artifact, report, ctx))

    async def _run_stage(
        self, ctx: RunContext, contract: StageContract, state: StageState
    ) -> StageState | PipelineError:
        """Run one stage. Returns the next state or the error that aborts the run."""
        stage = contract.name
        ctx.current_stage = stage

        try:
            contract.input_validator(state)
        except StageContractError as e:
            self._record(ctx, stage, 1, datetime.now(UTC), 0.0, "failed", str(e))
            return self._stage_error(contract, e, ctx)

        ctx.consume_quota(contract.quota_cost)
        timings: list[tuple[datetime, float]] = []

        async def attempt() -> Any:
            started_at = datetime.now(UTC)
            start = perf_counter()
            try:
                value = contract.call(self._collaborators, state)
                if inspect.isawaitable(value):
                    value = await value
                contract.output_validator(value, state)
                return value
            finally:
                timings.append((started_at, (perf_counter() - start) * 1000))

        def on_retry(attempt_number: int, error: BaseException) -> None:
            started_at, duration = timings[-1]
            self._record(
                ctx,
                stage,
                attempt_number,
                started_at,
                duration,
                "retry",
                describe_cause(error),
            )

        result = await self._retry.execute(attempt, on_retry=on_retry)
        started_at, duration = timings[-1] if timings else (datetime.now(UTC), 0.0)
        attempt_number = max(len(timings), 1)

        def finish(outcome: StageOutcome, message: str) -> None:
            self._record(ctx, stage, attempt_number, started_at, duration, outcome, message)

        match result:
            case Ok(value=value):
                finish("ok", "Stage completed")
                return contract.store(state, value)

            case Recoverable(error=error, partial=partial):
                degenerate = isinstance(error, DegradedResultError)
                allowed = contract.degradable if degenerate else contract.recoverable
                if not allowed:
                    finish("failed", describe_cause(error))
                    return self._stage_error(contract, error, ctx)
                try:
                    fallback = resolve_fallback(
                        contract, error, state=state, partial=partial
                    )
                except StageContractError as e:
                    finish("failed", str(e))
                    return self._stage_error(contract, e, ctx)
                try:
                    contract.output_validator(fallback.value, state)
                except (DegradedResultError, StageContractError) as e:
                    finish("failed", f"Fallback rejected: {describe_cause(e)}")
                    return self._stage_error(
                        contract,
                        InvariantViolationError(
                            f"Fallback for stage '{stage}' is invalid: {describe_cause(e)}",
                            stage_name=stage,
                        ),
                        ctx,
                    )
                ctx.mark_degraded(stage, fallback.reason)
                finish("degraded", fallback.reason)
                return contract.store(state, fallback.value)

            case Fatal(error=error):
                finish("failed", describe_cause(error))
                return self._stage_error(contract, error, ctx)

        raise InvariantViolationError(  # pragma: no cover - exhaustive match
            f"Retry policy returned {type(result).__name__}", stage_name=stage
        )

    # --- Outcome construction ---

    def _stage_error(
        self, contract: StageContract, error: BaseException, ctx: RunContext
    ) -> PipelineError:
        """Map an exception raised at `contract` onto the closed error taxonomy."""
        suggested_action = contract.suggested_action
        if isinstance(error, CancelledRunError):
            kind = "cancelled"
            suggested_action = CANCELLED_ACTION
        elif isinstance(error, InvariantViolationError):
            kind = "pipeline_error"
            suggested_action = INTERNAL_ERROR_ACTION
        elif isinstance(error, StageContractError):
            kind = error.kind or f"{contract.name.value}_failed"
            suggested_action = error.suggested_action or suggested_action
            if kind == "pipeline_error":
                suggested_action = error.suggested_action or INTERNAL_ERROR_ACTION
        else:
            kind = f"{contract.name.value}_failed"

        return PipelineError(
            stage=contract.name.error_stage,
            kind=kind,
            message=str(error) or type(error).__name__,
            suggested_action=suggested_action,
            session_id=ctx.session_id,
        )

    def _validation_action(self, error: ValidationError) -> str:
        if error.field_name in (None, "intent"):
            return (
                "Describe what you want to build in "
                f"{self.config.min_intent_length}-{self.config.max_intent_length} "
                "characters, e.g. 'Create a user authentication system with login'"
            )
        return f"Correct the '{error.field_name}' option and try again"

    def _succeed(self, ctx: RunContext, outcome: PipelineSuccess) -> PipelineSuccess:
        duration = ctx.close()
        self._metrics.record_run(duration, success=True)
        self._emit(
            ctx,
            TelemetryRecord(
                level="INFO",
                session_id=ctx.session_id,
                stage=PIPELINE_STAGE,
                message="Pipeline run completed",
                outcome="ok",
                duration_ms=duration,
                details={
                    "performance": ctx.performance,
                    "quotaUsed": ctx.quota_used,
                    "degradedStages": [str(s) for s in ctx.degraded],
                    "savingsPercentage": outcome.efficiency_report.savings_percentage,
                },
            ),
        )
        return outcome

    def _fail(self, ctx: RunContext, error: PipelineError) -> PipelineFailure:
        duration = ctx.close()
        self._metrics.record_run(duration, success=False)
        self._emit(
            ctx,
            TelemetryRecord(
                level="ERROR",
                session_id=ctx.session_id,
                stage=error.stage,
                message=f"Pipeline run failed: {error.message}",
                outcome="failed",
                duration_ms=duration,
                details={
                    "error": error.to_dict(),
                    "performance": ctx.performance,
                    "quotaUsed": ctx.quota_used,
                },
            ),
        )
        return PipelineFailure(error=error, context=ctx)

    # --- Telemetry ---

    def _record(
        self,
        ctx: RunContext,
        stage: StageName,
        attempt: int,
        started_at: datetime,
        duration_ms: float,
        outcome: StageOutcome,
        message: str,
    ) -> None:
        ctx.record(
            StageLogEntry(
                stage=stage,
                attempt=attempt,
                started_at=started_at,
                duration_ms=duration_ms,
                outcome=outcome,
                message=message,
            )
        )
        self._emit(
            ctx,
            TelemetryRecord(
                level=_OUTCOME_LEVELS[outcome],
                session_id=ctx.session_id,
                stage=stage.value,
                message=message,
                outcome=outcome,
                duration_ms=duration_ms,
                attempt=attempt,
                timestamp=started_at,
            ),
        )

    def _emit(self, ctx: RunContext, record: TelemetryRecord) -> None:
        try:
            self._sink.record(record)
        except Exception as e:
            log.error(
                "Telemetry sink '%s' failed for %s: %s",
                type(self._sink).__name__,
                ctx.session_id,
                e,
                exc_info=True,
            )


def create_orchestrator(
    config: FrozenConfig | None = None,
    collaborators: Collaborators | None = None,
    *,
    sink: TelemetrySink | None = None,
) -> PipelineOrchestrator:
    """Create an orchestrator with optional configuration.

    If no configuration is provided, it is resolved from the environment and
    the project file.
    """
    # This is the only place where ambient configuration is resolved.
    final_config = config if config is not None else resolve_config().to_frozen()
    return PipelineOrchestrator(final_config, collaborators, sink=sink)


def run_intent(
    raw_intent: str,
    options: PipelineOptions | Mapping[str, Any] | None = None,
    *,
    config: FrozenConfig | None = None,
) -> PipelineOutcome:
    """Synchronous convenience wrapper around `PipelineOrchestrator.run`.

    Must not be called from inside a running event loop.
    """
    orchestrator = create_orchestrator(config)
    return asyncio.run(orchestrator.run(raw_intent, options))

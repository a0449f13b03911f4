"""Core data types that describe a pipeline run.

This module defines the stage identities, the normalized result of a single
collaborator call, the per-attempt log entry, and the terminal outcome a
caller receives. Business values live in `intent_pipeline.core.models`.
"""

from __future__ import annotations

import dataclasses
from datetime import datetime
import enum
import typing

if typing.TYPE_CHECKING:
    from intent_pipeline.core.models import EfficiencyReport, SpecArtifact
    from intent_pipeline.pipeline.context import RunContext


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            raise exc(f"{field_name}: {message}")
        raise exc(message)


# --- Stage identity ---

ErrorStage = typing.Literal["intent", "analysis", "optimization", "forecasting", "spec"]


class StageName(enum.StrEnum):
    """The six pipeline stages, in execution order."""

    INTENT = "intent"
    ANALYSIS = "analysis"
    OPTIMIZATION = "optimization"
    FORECASTING = "forecasting"
    SUMMARY = "summary"
    SPEC = "spec"

    @property
    def index(self) -> int:
        """Zero-based position of the stage in the fixed sequence."""
        return list(StageName).index(self)

    @property
    def error_stage(self) -> ErrorStage:
        """Stage label used on the error surface.

        The summary stage has no label of its own there and reports as
        "analysis", the stage whose output it summarizes.
        """
        if self is StageName.SUMMARY:
            return "analysis"
        return typing.cast("ErrorStage", self.value)


# --- Normalized collaborator results ---


@dataclasses.dataclass(frozen=True, slots=True)
class Ok[T]:
    """The collaborator produced a usable value."""

    value: T


@dataclasses.dataclass(frozen=True, slots=True)
class Recoverable[T]:
    """The call failed or degenerated, but a fallback may apply."""

    error: Exception
    partial: T | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class Fatal:
    """The call failed in a way no fallback can repair."""

    error: Exception


type StageResult[T] = Ok[T] | Recoverable[T] | Fatal

# --- Telemetry log entries ---

StageOutcome = typing.Literal["ok", "retry", "degraded", "failed"]


@dataclasses.dataclass(frozen=True, slots=True)
class StageLogEntry:
    """One structured entry per stage attempt."""

    stage: StageName
    attempt: int
    started_at: datetime
    duration_ms: float
    outcome: StageOutcome
    message: str = ""

    def __post_init__(self) -> None:
        """Validate entry invariants."""
        _require(
            condition=self.attempt >= 1,
            message="must be >= 1",
            field_name="attempt",
        )
        _require(
            condition=self.duration_ms >= 0,
            message="must be >= 0",
            field_name="duration_ms",
        )

    @property
    def stage_index(self) -> int:
        return self.stage.index


# --- Terminal outcome ---


@dataclasses.dataclass(frozen=True, slots=True)
class PipelineError:
    """The closed error value surfaced to callers on failure.

    `kind` is one of `validation_failed`, `<stage>_failed`, `cancelled` or
    `pipeline_error`. `suggested_action` is always non-empty.
    """

    stage: ErrorStage
    kind: str
    message: str
    suggested_action: str
    session_id: str

    def __post_init__(self) -> None:
        """Validate that every fatal error stays actionable."""
        _require(
            condition=bool(self.suggested_action.strip()),
            message="must be a non-empty string",
            field_name="suggested_action",
        )

    def to_dict(self) -> dict[str, str]:
        return dataclasses.asdict(self)


@dataclasses.dataclass(frozen=True, slots=True)
class PipelineSuccess:
    """A completed run with its artifact and efficiency report."""

    artifact: SpecArtifact
    efficiency_report: EfficiencyReport
    context: RunContext

    @property
    def success(self) -> typing.Literal[True]:
        return True


@dataclasses.dataclass(frozen=True, slots=True)
class PipelineFailure:
    """A run aborted by a fatal error. Never carries a partial artifact."""

    error: PipelineError
    context: RunContext

    @property
    def success(self) -> typing.Literal[False]:
        return False


type PipelineOutcome = PipelineSuccess | PipelineFailure

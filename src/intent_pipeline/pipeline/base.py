"""Collaborator protocol and the per-stage contract shape."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
import dataclasses
from typing import TYPE_CHECKING, Any, Protocol

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
    from intent_pipeline.core.options import Intent, PipelineOptions
    from intent_pipeline.core.types import StageName

type MaybeAwaitable[T] = T | Awaitable[T]


class Collaborators(Protocol):
    """The six business collaborators the pipeline drives.

    Implementations may be synchronous or asynchronous per method and must be
    safe to call from concurrent runs. A collaborator never calls another
    collaborator; the orchestrator threads values between them.
    """

    def parse(
        self, text: str, options: PipelineOptions | None
    ) -> MaybeAwaitable[ParsedIntent]: ...

    def analyze(self, intent: ParsedIntent) -> MaybeAwaitable[ConsultingAnalysis]: ...

    def optimize(
        self, intent: ParsedIntent, analysis: ConsultingAnalysis
    ) -> MaybeAwaitable[OptimizedWorkflow]: ...

    def forecast(
        self, workflow: OptimizedWorkflow, analysis: ConsultingAnalysis
    ) -> MaybeAwaitable[ROIAnalysis]: ...

    def summarize(
        self,
        analysis: ConsultingAnalysis,
        techniques: tuple[ConsultingTechnique, ...],
    ) -> MaybeAwaitable[ConsultingSummary]: ...

    def emit_spec(
        self,
        workflow: OptimizedWorkflow,
        summary: ConsultingSummary,
        roi: ROIAnalysis,
        objective: str,
    ) -> MaybeAwaitable[SpecArtifact]: ...


@dataclasses.dataclass(frozen=True, slots=True)
class StageState:
    """Values produced so far in a run. Each stage fills exactly one slot."""

    intent: Intent
    parsed: ParsedIntent | None = None
    analysis: ConsultingAnalysis | None = None
    workflow: OptimizedWorkflow | None = None
    roi: ROIAnalysis | None = None
    summary: ConsultingSummary | None = None
    artifact: SpecArtifact | None = None


type StageCall = Callable[[Collaborators, StageState], MaybeAwaitable[Any]]
type InputValidator = Callable[[StageState], None]
type OutputValidator = Callable[[Any, StageState], None]
type FallbackFactory = Callable[[StageState, Any, BaseException], Any]
type StateUpdate = Callable[[StageState, Any], StageState]


def accept_any_input(state: StageState) -> None:
    """Input validator for stages with no upstream requirements."""


@dataclasses.dataclass(frozen=True, slots=True)
class StageContract:
    """Declarative description of one pipeline stage.

    Contracts are stateless and shared by every run.

    Attributes:
        name: Stage identity; also fixes the stage's position in the sequence.
        call: Invokes the collaborator with the values it needs from state.
        store: Returns a new state with the stage's output filled in.
        output_validator: Raises `DegradedResultError` for usable-but-empty
            output or `StageContractError` for output no fallback can repair.
        input_validator: Raises `StageContractError` when upstream values
            cannot feed this stage.
        recoverable: Whether collaborator failures fall back instead of aborting.
        degradable: Whether degenerate output falls back instead of aborting.
        fallback: Builds a substitute value; None when no safe substitute exists.
        suggested_action: Shown to the caller when the stage aborts the run.
        quota_cost: Quota units charged when the stage runs.
    """

    name: StageName
    call: StageCall
    store: StateUpdate
    output_validator: OutputValidator
    suggested_action: str
    input_validator: InputValidator = accept_any_input
    recoverable: bool = True
    degradable: bool = True
    fallback: FallbackFactory | None = None
    quota_cost: int = 1

    def __post_init__(self) -> None:
        if not self.suggested_action.strip():
            raise ValueError(f"Stage '{self.name}' needs a suggested action")
        if (self.recoverable or self.degradable) and self.fallback is None:
            raise ValueError(
                f"Stage '{self.name}' can fall back but has no fallback factory"
            )
        if self.quota_cost < 0:
            raise ValueError("quota_cost must be >= 0")

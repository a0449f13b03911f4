"""Exception hierarchy for the intent pipeline.

Exceptions are internal control flow only. The orchestrator converts every
one of them into a `PipelineError` value before returning, so nothing here
crosses the public `run` boundary.
"""

from __future__ import annotations


class IntentPipelineError(Exception):
    """Base exception for all intent pipeline errors."""


class ValidationError(IntentPipelineError):
    """Raised when the raw intent or its options fail precondition checks.

    Validation failures are deterministic and are never retried.
    """

    def __init__(self, message: str, field_name: str | None = None) -> None:
        self.field_name = field_name
        super().__init__(message)


class ConfigurationError(IntentPipelineError):
    """Raised when pipeline settings cannot be resolved or validated."""


class TransientStageError(IntentPipelineError):
    """A collaborator failure that may succeed if attempted again."""


class DegradedResultError(IntentPipelineError):
    """A collaborator returned a structurally valid but unusable result.

    Carries the degenerate value (if any) so the fallback resolver can build
    on whatever partial structure it has.
    """

    def __init__(self, reason: str, partial: object | None = None) -> None:
        self.reason = reason
        self.partial = partial
        super().__init__(reason)


class StageContractError(IntentPipelineError):
    """A stage received or produced a value that violates its contract.

    Contract errors have no safe substitute and abort the run. `kind`
    overrides the default `<stage>_failed` label on the surfaced error.
    """

    def __init__(
        self,
        message: str,
        suggested_action: str | None = None,
        *,
        kind: str | None = None,
    ) -> None:
        self.suggested_action = suggested_action
        self.kind = kind
        super().__init__(message)


class InvariantViolationError(IntentPipelineError):
    """Raised when an internal pipeline invariant is broken."""

    def __init__(self, message: str, stage_name: str | None = None) -> None:
        self.stage_name = stage_name
        super().__init__(message)


class CancelledRunError(IntentPipelineError):
    """Raised at a stage boundary when the run's cancellation token is set."""


_TRANSIENT_BUILTINS: tuple[type[BaseException], ...] = (TimeoutError, ConnectionError)


def is_transient(error: BaseException) -> bool:
    """Return True when `error` is worth another attempt."""
    return isinstance(error, (TransientStageError, *_TRANSIENT_BUILTINS))

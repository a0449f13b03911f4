"""Per-run identity, timeline and quota accounting."""

from __future__ import annotations

from datetime import UTC, datetime
from time import perf_counter, time_ns
from types import MappingProxyType
from typing import TYPE_CHECKING
import uuid

from intent_pipeline.core.exceptions import InvariantViolationError
from intent_pipeline.pipeline.metrics import PerformanceCategory, categorize_duration

if TYPE_CHECKING:
    from collections.abc import Mapping

    from intent_pipeline.core.types import StageLogEntry, StageName


def new_session_id() -> str:
    """Generate a session id of the form `pipeline-<ms>-<random>`."""
    return f"pipeline-{time_ns() // 1_000_000}-{uuid.uuid4().hex[:12]}"


class RunContext:
    """Identity and timeline of exactly one `run` call.

    The session id is fixed at construction. Log entries must arrive in
    non-decreasing stage order with no repeated (stage, attempt) pair, and
    nothing may be recorded once the context is closed.
    """

    __slots__ = (
        "_closed",
        "_degraded",
        "_entries",
        "_finished_ms",
        "_session_id",
        "_t0",
        "current_stage",
        "quota_used",
        "started_at",
    )

    def __init__(self, session_id: str | None = None) -> None:
        self._session_id = session_id or new_session_id()
        self.started_at = datetime.now(UTC)
        self._t0 = perf_counter()
        self._entries: list[StageLogEntry] = []
        self._degraded: dict[StageName, str] = {}
        self._closed = False
        self._finished_ms: float | None = None
        self.quota_used = 0
        self.current_stage: StageName | None = None

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def entries(self) -> tuple[StageLogEntry, ...]:
        return tuple(self._entries)

    @property
    def degraded(self) -> Mapping[StageName, str]:
        """Stages whose output was substituted, with the reason."""
        return MappingProxyType(self._degraded)

    @property
    def closed(self) -> bool:
        return self._closed

    def is_degraded(self, stage: StageName) -> bool:
        return stage in self._degraded

    def entries_for(self, stage: StageName) -> tuple[StageLogEntry, ...]:
        return tuple(e for e in self._entries if e.stage is stage)

    def record(self, entry: StageLogEntry) -> None:
        """Append a stage log entry, enforcing ordering invariants."""
        self._ensure_open()
        if self._entries:
            last = self._entries[-1]
            if entry.stage_index < last.stage_index:
                raise InvariantViolationError(
                    f"Stage '{entry.stage}' logged after '{last.stage}'",
                    stage_name=entry.stage,
                )
            if any(
                e.stage_index == entry.stage_index and e.attempt == entry.attempt
                for e in self._entries
            ):
                raise InvariantViolationError(
                    f"Attempt {entry.attempt} of stage '{entry.stage}' already logged",
                    stage_name=entry.stage,
                )
        self._entries.append(entry)

    def mark_degraded(self, stage: StageName, reason: str) -> None:
        self._ensure_open()
        self._degraded[stage] = reason

    def consume_quota(self, units: int) -> None:
        self._ensure_open()
        self.quota_used += units

    def close(self) -> float:
        """Stop the clock. Returns the total run duration in milliseconds."""
        self._ensure_open()
        self._finished_ms = (perf_counter() - self._t0) * 1000
        self._closed = True
        return self._finished_ms

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since construction, frozen once the run is closed."""
        if self._finished_ms is not None:
            return self._finished_ms
        return (perf_counter() - self._t0) * 1000

    @property
    def performance(self) -> PerformanceCategory:
        return categorize_duration(self.elapsed_ms)

    def _ensure_open(self) -> None:
        if self._closed:
            raise InvariantViolationError(
                f"Run {self._session_id} is already terminal"
            )

    def __repr__(self) -> str:
        return (
            f"RunContext(session_id={self._session_id!r}, "
            f"entries={len(self._entries)}, closed={self._closed})"
        )

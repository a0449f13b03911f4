"""Telemetry sink interfaces.

The orchestrator writes one structured record per stage attempt to an
injected sink and never reads anything back. A shared no-op sink keeps the
disabled path free of overhead.
"""

from collections import deque
from collections.abc import Iterator
import dataclasses
from datetime import UTC, datetime
import json
import logging
from typing import Any, Literal, Protocol, runtime_checkable

log = logging.getLogger(__name__)

Level = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


@dataclasses.dataclass(frozen=True, slots=True)
class TelemetryRecord:
    """A single structured telemetry record."""

    level: Level
    session_id: str
    stage: str
    message: str
    outcome: str | None = None
    duration_ms: float | None = None
    attempt: int | None = None
    timestamp: datetime = dataclasses.field(default_factory=lambda: datetime.now(UTC))
    details: dict[str, Any] = dataclasses.field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Flatten to a JSON-ready dict, dropping unset optional fields."""
        data: dict[str, Any] = {
            "level": self.level,
            "timestamp": self.timestamp.isoformat(),
            "sessionId": self.session_id,
            "stage": self.stage,
            "message": self.message,
        }
        if self.outcome is not None:
            data["outcome"] = self.outcome
        if self.duration_ms is not None:
            data["durationMs"] = round(self.duration_ms, 3)
        if self.attempt is not None:
            data["attempt"] = self.attempt
        if self.details:
            data.update(self.details)
        return data


@runtime_checkable
class TelemetrySink(Protocol):
    """Duck-typed protocol for telemetry sinks."""

    def record(self, entry: TelemetryRecord) -> None: ...  # noqa: D102


@dataclasses.dataclass(frozen=True, slots=True)
class _NullSink:
    """An immutable and stateless sink that discards everything."""

    def record(self, entry: TelemetryRecord) -> None:
        pass


NULL_SINK = _NullSink()


class LoggingSink:
    """Forwards records to the standard logging system as JSON lines."""

    __slots__ = ("_logger",)

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger("intent_pipeline.telemetry")

    def record(self, entry: TelemetryRecord) -> None:
        payload = entry.to_dict()
        self._logger.log(
            logging.getLevelNamesMapping()[entry.level],
            json.dumps(payload, default=str),
            extra={"telemetry": payload},
        )


class MemorySink:
    """Collects records in memory; intended for tests and development.

    Records are bounded per session so a long-lived sink cannot grow without
    limit.
    """

    def __init__(self, max_entries_per_session: int = 1000):
        self.max_entries = max_entries_per_session
        self._records: dict[str, deque[TelemetryRecord]] = {}

    def record(self, entry: TelemetryRecord) -> None:
        if entry.session_id not in self._records:
            self._records[entry.session_id] = deque(maxlen=self.max_entries)
        self._records[entry.session_id].append(entry)

    def __iter__(self) -> Iterator[TelemetryRecord]:
        for records in self._records.values():
            yield from records

    def __len__(self) -> int:
        return sum(len(records) for records in self._records.values())

    def for_session(self, session_id: str) -> list[TelemetryRecord]:
        return list(self._records.get(session_id, ()))

    @property
    def session_ids(self) -> tuple[str, ...]:
        return tuple(self._records)

    def get_report(self) -> str:
        """Generate a per-session, per-stage summary of recorded attempts."""
        lines = ["=== Telemetry Report ==="]
        for session_id, records in self._records.items():
            lines.append(f"\n--- {session_id} ---")
            for record in records:
                duration = (
                    f"{record.duration_ms:.2f}ms"
                    if record.duration_ms is not None
                    else "-"
                )
                lines.append(
                    f"{record.stage:<14} | {record.outcome or '-':<9} | "
                    f"{duration:>10} | {record.message}"
                )
        return "\n".join(lines)


class _FanOutSink:
    """Delivers each record to several sinks; one failing sink never stops the rest."""

    __slots__ = ("sinks",)

    def __init__(self, *sinks: TelemetrySink):
        self.sinks = sinks

    def record(self, entry: TelemetryRecord) -> None:
        for sink in self.sinks:
            try:
                sink.record(entry)
            except Exception as e:
                log.error(
                    "Telemetry sink '%s' failed: %s",
                    type(sink).__name__,
                    e,
                    exc_info=True,
                )


def create_sink(*sinks: TelemetrySink, enabled: bool = True) -> TelemetrySink:
    """Return a sink delivering to `sinks`.

    Returns the shared no-op sink when disabled or when no sinks are given.
    """
    if not enabled or not sinks:
        return NULL_SINK
    return _FanOutSink(*sinks)

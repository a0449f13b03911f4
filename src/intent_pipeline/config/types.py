"""Core configuration data types.

Configuration follows a resolve-once, freeze-then-flow pattern: the resolver
produces a `ResolvedConfig` carrying audit metadata, which is frozen into a
`FrozenConfig` before it reaches the orchestrator.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal, NamedTuple

ConfigOrigin = Literal["programmatic", "env", "file", "default"]
SourceMap = Mapping[str, ConfigOrigin]


@dataclass(frozen=True, slots=True)
class FrozenConfig:
    """Immutable configuration consumed by the orchestrator."""

    max_attempts: int = 3
    retry_delay_seconds: float = 0.5
    stage_timeout_seconds: float | None = 30.0
    telemetry_enabled: bool = True
    min_intent_length: int = 10
    max_intent_length: int = 5000


class ResolvedConfig(NamedTuple):
    """Configuration after resolution from all sources, before freezing."""

    max_attempts: int
    retry_delay_seconds: float
    stage_timeout_seconds: float | None
    telemetry_enabled: bool
    min_intent_length: int
    max_intent_length: int

    # Audit metadata - tracks where each field value came from
    origin: SourceMap

    def to_frozen(self) -> FrozenConfig:
        """Convert to the immutable configuration used in the pipeline."""
        values = self._asdict()
        values.pop("origin")
        return FrozenConfig(**values)

    def with_overrides(self, **overrides: object) -> "ResolvedConfig":
        """Create a new ResolvedConfig with programmatic overrides applied.

        Unknown fields are ignored.
        """
        new_values = self._asdict()
        new_origin = dict(self.origin)
        for field, value in overrides.items():
            if field in new_values and field != "origin":
                new_values[field] = value
                new_origin[field] = "programmatic"
        new_values["origin"] = new_origin
        return ResolvedConfig(**new_values)

    def audit(self) -> str:
        """Human-readable report of each field's value and origin."""
        lines = []
        for field, value in self._asdict().items():
            if field == "origin":
                continue
            origin = self.origin.get(field, "default")
            lines.append(f"{field:<24} = {value!r:<12} ({origin})")
        return "\n".join(lines)

"""
Global test configuration with support for different test types.
"""

from collections import Counter
from collections.abc import Callable
import os
from typing import Any

import pytest

from intent_pipeline.collaborators import DefaultCollaborators
from intent_pipeline.config import FrozenConfig
from intent_pipeline.orchestrator import PipelineOrchestrator
from intent_pipeline.pipeline import PipelineMetrics
from intent_pipeline.telemetry import MemorySink

# Scripted behavior that delegates to the real collaborator
CALL_THROUGH = object()


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def isolate_pipeline_env(request, monkeypatch):
    """Ensure a clean INTENT_PIPELINE_* environment for each test.

    Escape hatch: mark a test with @pytest.mark.allow_env_pollution to keep
    the current environment unchanged.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ.keys()):
        if key.startswith("INTENT_PIPELINE_"):
            monkeypatch.delenv(key, raising=False)


# --- Collaborator doubles ---


class ScriptedCollaborators(DefaultCollaborators):
    """Default collaborators whose methods can be scripted per test.

    Each scripted behavior is consumed in order; the last one repeats. A
    behavior may be an exception instance (raised), `CALL_THROUGH`, a
    callable (invoked with the method's arguments) or a plain value.
    """

    CALL_THROUGH = CALL_THROUGH

    def __init__(self) -> None:
        super().__init__()
        self.calls: Counter[str] = Counter()
        self.received: dict[str, tuple[Any, ...]] = {}
        self._scripts: dict[str, list[Any]] = {}

    def script(self, method: str, *behaviors: Any) -> "ScriptedCollaborators":
        self._scripts[method] = list(behaviors)
        return self

    def _invoke(self, method: str, default: Callable[..., Any], *args: Any) -> Any:
        self.calls[method] += 1
        self.received[method] = args
        script = self._scripts.get(method)
        if not script:
            return default(*args)
        behavior = script.pop(0) if len(script) > 1 else script[0]
        if behavior is CALL_THROUGH:
            return default(*args)
        if isinstance(behavior, BaseException):
            raise behavior
        if callable(behavior):
            return behavior(*args)
        return behavior

    def parse(self, text, options):
        return self._invoke("parse", super().parse, text, options)

    def analyze(self, intent):
        return self._invoke("analyze", super().analyze, intent)

    def optimize(self, intent, analysis):
        return self._invoke("optimize", super().optimize, intent, analysis)

    def forecast(self, workflow, analysis):
        return self._invoke("forecast", super().forecast, workflow, analysis)

    def summarize(self, analysis, techniques):
        return self._invoke("summarize", super().summarize, analysis, techniques)

    def emit_spec(self, workflow, summary, roi, objective):
        return self._invoke(
            "emit_spec", super().emit_spec, workflow, summary, roi, objective
        )


class FakeSleep:
    """Awaitable sleep that records requested delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# --- Fixtures ---


@pytest.fixture
def collaborators() -> ScriptedCollaborators:
    return ScriptedCollaborators()


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def metrics() -> PipelineMetrics:
    return PipelineMetrics()


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def make_orchestrator(collaborators, sink, metrics, fake_sleep):
    """Factory for orchestrators wired to in-memory doubles.

    Keyword arguments override `FrozenConfig` fields.
    """

    def _make(
        collaborators_override: Any = None, **config_overrides: Any
    ) -> PipelineOrchestrator:
        config = FrozenConfig(**{"retry_delay_seconds": 0.25, **config_overrides})
        return PipelineOrchestrator(
            config,
            collaborators_override or collaborators,
            sink=sink,
            metrics=metrics,
            sleep=fake_sleep,
        )

    return _make


AUTH_INTENT = "Create a user authentication system with login and registration"


@pytest.fixture
def auth_intent() -> str:
    return AUTH_INTENT


def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "integration: Full pipeline runs with the default collaborators",
        "slow: Tests that take >1 second",
        "allow_env_pollution: Keep INTENT_PIPELINE_* variables for this test",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)

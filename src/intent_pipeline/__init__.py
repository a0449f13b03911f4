"""Intent-to-spec pipeline orchestration."""

import importlib.metadata
import logging

from intent_pipeline.config import FrozenConfig, PipelineSettings, resolve_config
from intent_pipeline.core.exceptions import (
    ConfigurationError,
    IntentPipelineError,
    TransientStageError,
    ValidationError,
)
from intent_pipeline.core.options import CostCeiling, PipelineOptions
from intent_pipeline.core.types import (
    PipelineError,
    PipelineFailure,
    PipelineOutcome,
    PipelineSuccess,
    StageName,
)
from intent_pipeline.orchestrator import (
    PipelineOrchestrator,
    create_orchestrator,
    run_intent,
)
from intent_pipeline.pipeline import (
    CancellationToken,
    PipelineMetrics,
    RunContext,
    get_default_metrics,
)
from intent_pipeline.telemetry import (
    NULL_SINK,
    LoggingSink,
    MemorySink,
    TelemetryRecord,
    TelemetrySink,
)

# Version handling
try:
    __version__ = importlib.metadata.version("intent-pipeline")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Set up a null handler for the library's root logger.
# This prevents 'No handler found' errors if the consuming app has no logging configured.
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Public API
__all__ = [  # noqa: RUF022
    # Orchestration
    "PipelineOrchestrator",
    "create_orchestrator",
    "run_intent",
    "CancellationToken",
    # Outcomes
    "PipelineOutcome",
    "PipelineSuccess",
    "PipelineFailure",
    "PipelineError",
    "RunContext",
    "StageName",
    # Options and configuration
    "PipelineOptions",
    "CostCeiling",
    "PipelineSettings",
    "FrozenConfig",
    "resolve_config",
    # Telemetry and metrics
    "TelemetrySink",
    "TelemetryRecord",
    "LoggingSink",
    "MemorySink",
    "NULL_SINK",
    "PipelineMetrics",
    "get_default_metrics",
    # Exceptions
    "IntentPipelineError",
    "ValidationError",
    "ConfigurationError",
    "TransientStageError",
]

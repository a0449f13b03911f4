"""Stage contracts, retry, fallbacks and per-run bookkeeping."""

from .base import Collaborators, StageContract, StageState
from .cancellation import CancellationToken
from .context import RunContext
from .contracts import DEFAULT_CONTRACTS
from .fallbacks import Fallback, resolve_fallback
from .metrics import MetricsSummary, PipelineMetrics, get_default_metrics
from .report import derive_efficiency_report
from .retry import RetryPolicy

__all__ = [  # noqa: RUF022
    "Collaborators",
    "StageContract",
    "StageState",
    "DEFAULT_CONTRACTS",
    "RetryPolicy",
    "Fallback",
    "resolve_fallback",
    "RunContext",
    "CancellationToken",
    "PipelineMetrics",
    "MetricsSummary",
    "get_default_metrics",
    "derive_efficiency_report",
]

"""Command-line entry point.

Usage:
    python -m intent_pipeline "Create a user authentication system with login"
    python -m intent_pipeline "..." --json --expected-load 5000 --sensitivity high
"""

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from typing import Any

from intent_pipeline.core.exceptions import ConfigurationError
from intent_pipeline.core.types import PipelineFailure, PipelineOutcome
from intent_pipeline.orchestrator import create_orchestrator

# ruff: noqa: T201


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m intent_pipeline",
        description="Turn a statement of intent into an optimized spec",
    )
    parser.add_argument("intent", help="Free-text statement of intent")
    parser.add_argument(
        "--json", action="store_true", help="Print the full outcome as JSON"
    )
    parser.add_argument(
        "--expected-load", type=int, default=None, help="Expected request volume"
    )
    parser.add_argument(
        "--sensitivity",
        choices=("low", "medium", "high"),
        default=None,
        help="Performance sensitivity",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log stage records to stderr"
    )
    return parser


def _options(args: argparse.Namespace) -> dict[str, Any] | None:
    options: dict[str, Any] = {}
    if args.expected_load is not None:
        options["expected_load"] = args.expected_load
    if args.sensitivity is not None:
        options["performance_sensitivity"] = args.sensitivity
    return options or None


def _outcome_to_dict(outcome: PipelineOutcome) -> dict[str, Any]:
    context = outcome.context
    data: dict[str, Any] = {
        "success": outcome.success,
        "sessionId": context.session_id,
        "durationMs": round(context.elapsed_ms, 3),
        "quotaUsed": context.quota_used,
        "degradedStages": [str(stage) for stage in context.degraded],
    }
    if isinstance(outcome, PipelineFailure):
        data["error"] = outcome.error.to_dict()
    else:
        artifact = dataclasses.asdict(outcome.artifact)
        artifact.pop("document", None)
        data["artifact"] = artifact
        data["efficiencyReport"] = dataclasses.asdict(outcome.efficiency_report)
    return data


def _print_human(outcome: PipelineOutcome) -> None:
    if isinstance(outcome, PipelineFailure):
        error = outcome.error
        print(f"Pipeline failed at stage '{error.stage}' ({error.kind}): {error.message}")
        print(f"Suggested action: {error.suggested_action}")
        print(f"Session: {error.session_id}")
        return
    print(outcome.artifact.document)
    report = outcome.efficiency_report
    print(
        f"Savings: {report.savings_percentage:.0f}% "
        f"(cost savings {report.cost_savings:.4f}); "
        f"session {outcome.context.session_id}"
    )
    if outcome.context.degraded:
        stages = ", ".join(str(stage) for stage in outcome.context.degraded)
        print(f"Degraded stages: {stages}")


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.INFO, stream=sys.stderr)

    try:
        orchestrator = create_orchestrator()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    outcome = asyncio.run(orchestrator.run(args.intent, _options(args)))
    if args.json:
        print(json.dumps(_outcome_to_dict(outcome), indent=2, default=str))
    else:
        _print_human(outcome)
    return 0 if outcome.success else 1


if __name__ == "__main__":
    sys.exit(main())

"""Configuration introspection utilities for debugging and validation."""

import argparse
import json
import sys
from typing import Any

from intent_pipeline.core.exceptions import ConfigurationError

from .resolver import resolve_config
from .types import ResolvedConfig

# ruff: noqa: T201


def get_config_info(programmatic: dict[str, Any] | None = None) -> dict[str, Any]:
    """Get structured configuration information for programmatic use."""
    try:
        resolved = resolve_config(programmatic)
    except ConfigurationError as e:
        return {
            "status": "invalid",
            "error": str(e),
            "config": None,
            "sources": {},
            "warnings": [],
        }

    values = resolved._asdict()
    sources = dict(values.pop("origin"))
    return {
        "status": "valid",
        "config": values,
        "sources": sources,
        "warnings": _get_config_warnings(resolved),
    }


def _get_config_warnings(resolved: ResolvedConfig) -> list[str]:
    """Non-fatal configuration issues worth surfacing."""
    warnings = []
    if resolved.max_attempts == 1:
        warnings.append("Retries are disabled - transient failures fall back at once")
    if resolved.stage_timeout_seconds is None:
        warnings.append("Stage timeout disabled - a hung collaborator blocks the run")
    if not resolved.telemetry_enabled:
        warnings.append("Telemetry disabled - stage records are discarded")
    return warnings


def print_effective_config() -> int:
    """Print values, their origins and any warnings. Returns an exit code."""
    try:
        resolved = resolve_config()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    print("=== Effective Configuration ===")
    print(resolved.audit())
    warnings = _get_config_warnings(resolved)
    if warnings:
        print("\nWarnings:")
        for warning in warnings:
            print(f"  - {warning}")
    return 0


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for configuration introspection."""
    parser = argparse.ArgumentParser(
        description="Inspect intent-pipeline configuration",
        prog="python -m intent_pipeline.config",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON instead of human-readable format",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Just check if configuration is valid (exit code 0=valid, 1=invalid)",
    )
    args = parser.parse_args(argv)

    if args.check:
        sys.exit(0 if get_config_info()["status"] == "valid" else 1)

    if args.json:
        info = get_config_info()
        print(json.dumps(info, indent=2))
        sys.exit(0 if info["status"] == "valid" else 1)

    sys.exit(print_effective_config())

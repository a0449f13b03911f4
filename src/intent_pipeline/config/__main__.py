"""CLI entry point for configuration introspection.

Usage:
    python -m intent_pipeline.config
    python -m intent_pipeline.config --check
    python -m intent_pipeline.config --json
"""

from .introspection import main

if __name__ == "__main__":
    main()

"""Markdown rendering of spec artifacts with Jinja2."""

from __future__ import annotations

from functools import cache
from typing import TYPE_CHECKING

from jinja2 import Environment, PackageLoader, StrictUndefined

if TYPE_CHECKING:
    from intent_pipeline.core.models import SpecArtifact

SPEC_TEMPLATE = "spec.md.j2"


@cache
def _environment() -> Environment:
    env = Environment(  # noqa: S701 - markdown output, not HTML
        loader=PackageLoader("intent_pipeline", "templates"),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )
    env.filters["percent"] = lambda value: f"{float(value):.0f}%"
    return env


def render_spec_document(artifact: SpecArtifact) -> str:
    """Render requirements, design and tasks of `artifact` as markdown."""
    template = _environment().get_template(SPEC_TEMPLATE)
    return template.render(spec=artifact)

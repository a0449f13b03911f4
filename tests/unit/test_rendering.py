import dataclasses

import pytest

from intent_pipeline.collaborators import DefaultCollaborators, SpecEmitter
from intent_pipeline.core.models import SpecTask
from intent_pipeline.rendering import render_spec_document

pytestmark = pytest.mark.unit


@pytest.fixture
def artifact():
    c = DefaultCollaborators()
    parsed = c.parse("Create a user authentication system with login and registration", None)
    analysis = c.analyze(parsed)
    workflow = c.optimize(parsed, analysis)
    return SpecEmitter().emit_spec(
        workflow,
        c.summarize(analysis, analysis.techniques_used),
        c.forecast(workflow, analysis),
        parsed.business_objective,
    )


def test_document_has_every_section(artifact):
    document = render_spec_document(artifact)

    for heading in ("## Requirements", "## Design", "## Tasks", "## Options"):
        assert heading in document
    assert "### req-1 (high)" in document
    assert "### req-2 (medium)" in document


def test_options_table_formats_percentages(artifact):
    document = render_spec_document(artifact)

    assert "| Conservative | 0% | low | low |" in document
    assert "| Balanced | 5% | medium | low |" in document


def test_subtasks_render_as_nested_checkboxes(artifact):
    task = dataclasses.replace(
        artifact.tasks[0], subtasks=(SpecTask(id="task-1.1", description="Hash passwords"),)
    )
    nested = dataclasses.replace(artifact, tasks=(task,))

    document = render_spec_document(nested)

    assert "\n  - [ ] task-1.1: Hash passwords\n" in document


def test_rendering_is_deterministic(artifact):
    assert render_spec_document(artifact) == render_spec_document(artifact)
    assert render_spec_document(artifact) == artifact.document

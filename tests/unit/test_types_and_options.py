import pytest

from intent_pipeline.core.exceptions import ValidationError
from intent_pipeline.core.options import CostCeiling, PipelineOptions, coerce_options
from intent_pipeline.core.types import PipelineError, StageName

pytestmark = pytest.mark.unit


# --- Stage identity ---


def test_stage_indices_follow_declaration_order():
    assert [s.index for s in StageName] == [0, 1, 2, 3, 4, 5]


@pytest.mark.parametrize(
    ("stage", "label"),
    [
        (StageName.INTENT, "intent"),
        (StageName.ANALYSIS, "analysis"),
        (StageName.OPTIMIZATION, "optimization"),
        (StageName.FORECASTING, "forecasting"),
        (StageName.SUMMARY, "analysis"),
        (StageName.SPEC, "spec"),
    ],
)
def test_error_stage_labels(stage, label):
    assert stage.error_stage == label


# --- PipelineError ---


def test_pipeline_error_requires_suggested_action():
    with pytest.raises(ValueError, match="suggested_action"):
        PipelineError(
            stage="intent",
            kind="validation_failed",
            message="bad",
            suggested_action="   ",
            session_id="pipeline-1-a",
        )


def test_pipeline_error_serializes_flat():
    error = PipelineError(
        stage="spec",
        kind="spec_failed",
        message="boom",
        suggested_action="Try again",
        session_id="pipeline-1-a",
    )

    assert error.to_dict() == {
        "stage": "spec",
        "kind": "spec_failed",
        "message": "boom",
        "suggested_action": "Try again",
        "session_id": "pipeline-1-a",
    }


# --- Options ---


def test_none_and_models_pass_through():
    options = PipelineOptions(expected_load=10)

    assert coerce_options(None) is None
    assert coerce_options(options) is options


def test_mapping_accepts_both_key_styles():
    options = coerce_options(
        {
            "expected_load": 100,
            "costCeiling": {"maxUnitsA": 50, "max_cost_currency": 2.5},
            "performanceSensitivity": "low",
        }
    )

    assert options == PipelineOptions(
        expected_load=100,
        cost_ceiling=CostCeiling(max_units_a=50, max_cost_currency=2.5),
        performance_sensitivity="low",
    )


def test_documented_config_keys_are_accepted():
    options = coerce_options(
        {
            "expectedLoad": 250,
            "costCeiling": {"maxUnitsA": 40, "maxUnitsB": 6, "maxCostCurrency": 12.5},
            "performanceSensitivity": "medium",
        }
    )

    assert options == PipelineOptions(
        expected_load=250,
        cost_ceiling=CostCeiling(max_units_a=40, max_units_b=6, max_cost_currency=12.5),
        performance_sensitivity="medium",
    )


@pytest.mark.parametrize(
    "raw",
    [
        {"costCeiling": {"maxCostCurrency": -1}},
        {"costCeiling": {"maxCost": 1}},
        {"expectedLoad": 2_000_000},
        {"performanceSensitivity": "extreme"},
        {"surprise": 1},
    ],
)
def test_invalid_option_values_raise_validation_error(raw):
    with pytest.raises(ValidationError) as exc_info:
        coerce_options(raw)
    assert exc_info.value.field_name


def test_non_mapping_options_are_rejected():
    with pytest.raises(ValidationError, match="mapping"):
        coerce_options(["expected_load", 5])  # type: ignore[arg-type]


def test_options_are_immutable():
    options = PipelineOptions(expected_load=1)

    with pytest.raises(Exception):  # noqa: B017, PT011
        options.expected_load = 2  # type: ignore[misc]

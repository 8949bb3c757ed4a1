"""Tests for the case valuation calculator."""
import pytest

from analytics.case_valuation import (
    CaseEvaluation,
    CaseValuator,
    evaluate_case,
    compare_scenarios,
    compare_to_prediction,
    policy_utilization,
    jury_likelihood_label,
    parse_evaluation_args,
)
from analytics.errors import ValidationError


@pytest.fixture
def base_case() -> CaseEvaluation:
    """Typical soft-tissue case at 75% liability."""
    return CaseEvaluation(
        medical_specials=50000,
        economic_damages=0,
        non_economic_damages=100000,
        liability_percentage=75,
    )


def test_range_from_damages_and_liability(base_case):
    result = evaluate_case(base_case)
    assert result.total_damages == 150000
    assert result.adjusted_value == pytest.approx(112500)
    assert result.settlement_range.low == pytest.approx(67500)
    assert result.settlement_range.high == pytest.approx(101250)
    assert result.jury_adjusted_range is None
    assert result.recommended_settlement == pytest.approx(84375)
    assert result.warnings == []


def test_policy_limit_caps_range(base_case):
    result = evaluate_case(base_case.with_changes(policy_limit=80000))
    assert result.settlement_range.high == 80000
    assert result.settlement_range.low == pytest.approx(67500)
    assert len(result.warnings) == 1
    assert "policy limit" in result.warnings[0]


def test_policy_limit_never_raises_range(base_case):
    result = evaluate_case(base_case.with_changes(policy_limit=5_000_000))
    assert result.settlement_range.high == pytest.approx(101250)


def test_liability_defaults_to_full():
    result = evaluate_case(CaseEvaluation(medical_specials=10000))
    assert result.adjusted_value == 10000
    assert result.liability_percentage == 100


def test_jury_likelihood_overlay_and_recommendation(base_case):
    result = evaluate_case(base_case.with_changes(jury_damages_likelihood=60))
    assert result.jury_adjusted_range.low == pytest.approx(40500)
    assert result.jury_adjusted_range.high == pytest.approx(60750)
    # base range stays primary
    assert result.settlement_range.high == pytest.approx(101250)
    assert result.recommended_settlement == pytest.approx(74250)


def test_no_recommendation_without_value():
    result = evaluate_case(CaseEvaluation())
    assert result.recommended_settlement is None
    assert "recommended_settlement" not in result.to_dict()
    assert "jury_adjusted_range" not in result.to_dict()


def test_warning_for_underinsured_case(base_case):
    result = evaluate_case(base_case.with_changes(policy_limit=50000))
    assert len(result.warnings) == 2
    assert any("below 60%" in w for w in result.warnings)


def test_warning_for_inconsistent_liability_and_jury():
    evaluation = CaseEvaluation(medical_specials=100000, liability_percentage=40, jury_damages_likelihood=80)
    warnings = evaluate_case(evaluation).warnings
    assert len(warnings) == 1
    assert "consistency" in warnings[0]


@pytest.mark.parametrize("fields", [
    {"medical_specials": -1},
    {"economic_damages": 2e9},
    {"liability_percentage": 150},
    {"jury_damages_likelihood": -5},
])
def test_invalid_inputs_rejected(fields):
    with pytest.raises(ValidationError) as exc:
        CaseEvaluation(**fields)
    assert set(exc.value.details) == set(fields)


def test_from_record_parses_shorthand_and_clamps():
    evaluation = CaseEvaluation.from_record({
        "medical_specials": "50k",
        "non_economic_damages": "$100,000",
        "policy_limits": 1000000,
        "liability_percentage": 150,
    })
    assert evaluation.medical_specials == 50000
    assert evaluation.non_economic_damages == 100000
    assert evaluation.policy_limit == 1000000
    assert evaluation.liability_percentage == 100


def test_from_record_without_clamp_rejects_out_of_range():
    with pytest.raises(ValidationError) as exc:
        CaseEvaluation.from_record({"liability_percentage": 150, "jury_damages_likelihood": -20}, clamp=False)
    assert set(exc.value.details) == {"liability_percentage", "jury_damages_likelihood"}


def test_from_record_rejects_garbage():
    with pytest.raises(ValidationError):
        CaseEvaluation.from_record({"medical_specials": "lots"})


def test_has_data():
    assert not CaseEvaluation(policy_limit=100000).has_data
    assert CaseEvaluation(liability_percentage=50).has_data


def test_compare_scenarios_reports_high_end_delta(base_case):
    hypothetical = base_case.with_changes(liability_percentage=100)
    comparison = compare_scenarios(base_case, hypothetical)

    assert comparison.current.settlement_range.high == pytest.approx(101250)
    assert comparison.hypothetical.settlement_range.high == pytest.approx(135000)
    assert comparison.delta == pytest.approx(33750)
    assert comparison.delta_percent == pytest.approx(100 / 3)
    # inputs untouched
    assert base_case.liability_percentage == 75

    data = comparison.to_dict()
    assert data["delta"]["amount"] == pytest.approx(33750)


def test_compare_scenarios_uses_jury_adjusted_high(base_case):
    current = base_case.with_changes(jury_damages_likelihood=50)
    hypothetical = base_case.with_changes(jury_damages_likelihood=100)
    comparison = CaseValuator().compare_scenarios(current, hypothetical)
    assert comparison.delta == pytest.approx(50625)
    assert comparison.delta_percent == pytest.approx(100)


def test_compare_scenarios_percent_undefined_from_zero():
    comparison = compare_scenarios(CaseEvaluation(), CaseEvaluation(medical_specials=10000))
    assert comparison.delta == pytest.approx(9000)
    assert comparison.delta_percent is None


def test_prediction_position_and_policy_utilization(base_case):
    result = evaluate_case(base_case.with_changes(policy_limit=200000))
    assert compare_to_prediction(result, 50000) == "below"
    assert compare_to_prediction(result, 80000) == "within"
    assert compare_to_prediction(result, 150000) == "above"
    assert compare_to_prediction(result, None) is None
    assert policy_utilization(result, 100000) == pytest.approx(50)
    assert policy_utilization(evaluate_case(base_case), 100000) is None


def test_jury_likelihood_label():
    assert jury_likelihood_label(None) == ""
    assert jury_likelihood_label(25) == "Low likelihood"
    assert jury_likelihood_label(60) == "Moderate likelihood"
    assert jury_likelihood_label(61) == "High likelihood"


def test_parse_evaluation_args_separates_invalid_from_empty():
    evaluation, invalid = parse_evaluation_args({
        "medical_specials": "50k",
        "economic_damages": "lots",
        "liability_percentage": "",
    })
    assert evaluation.medical_specials == 50000
    assert evaluation.economic_damages is None
    assert evaluation.liability_percentage is None
    assert list(invalid) == ["economic_damages"]


def test_summary_mentions_range(base_case):
    text = evaluate_case(base_case.with_changes(policy_limit=80000)).summary()
    assert "$67,500 - $80,000" in text
    assert "Warnings:" in text

"""Tests for bracket amount suggestions."""
from analytics.bracket_suggestion import suggest_bracket
from analytics.case_valuation import CaseEvaluation
from conftest import make_moves


def test_fallback_when_nothing_known():
    suggestion = suggest_bracket([])
    assert suggestion.plaintiff_amount == 2_000_000
    assert suggestion.defendant_amount == 750_000


def test_policy_only():
    suggestion = suggest_bracket([], policy_limit=1_000_000)
    assert suggestion.plaintiff_amount == 900_000
    assert suggestion.defendant_amount == 500_000


def test_goal_only():
    suggestion = suggest_bracket([], settlement_goal=500_000)
    assert suggestion.plaintiff_amount == 650_000
    assert suggestion.defendant_amount == 350_000
    assert "$500,000" in suggestion.reasoning


def test_narrows_gap_between_last_demand_and_offer():
    moves = make_moves(("plaintiff", "demand", 1_000_000), ("defendant", "offer", 200_000))
    suggestion = suggest_bracket(moves)
    assert suggestion.plaintiff_amount == 680_000
    assert suggestion.defendant_amount == 520_000


def test_evaluation_drives_bracket_inside_the_gap():
    evaluation = CaseEvaluation(medical_specials=50_000, non_economic_damages=100_000, liability_percentage=75)
    moves = make_moves(("plaintiff", "demand", 200_000), ("defendant", "offer", 50_000))
    suggestion = suggest_bracket(moves, evaluation=evaluation)
    assert suggestion.plaintiff_amount == 101_250
    assert suggestion.defendant_amount == 60_750
    assert "adjusted value: $112,500" in suggestion.reasoning


def test_policy_limit_caps_plaintiff_side():
    evaluation = CaseEvaluation(
        medical_specials=50_000, non_economic_damages=100_000,
        liability_percentage=75, policy_limit=100_000,
    )
    suggestion = suggest_bracket([], evaluation=evaluation)
    assert suggestion.plaintiff_amount <= 100_000
    assert suggestion.defendant_amount < suggestion.plaintiff_amount
    assert "policy limit" in suggestion.reasoning


def test_small_amounts_keep_plaintiff_above_defendant():
    moves = make_moves(("plaintiff", "demand", 1_000), ("defendant", "offer", 500))
    suggestion = suggest_bracket(moves)
    assert suggestion.plaintiff_amount > suggestion.defendant_amount


def test_zero_liability_still_uses_evaluation():
    evaluation = CaseEvaluation(medical_specials=100_000, liability_percentage=0)
    moves = make_moves(("plaintiff", "demand", 200_000))
    suggestion = suggest_bracket(moves, evaluation=evaluation)
    assert "adjusted value: $0" in suggestion.reasoning
    assert suggestion.plaintiff_amount == 1_500
    assert suggestion.defendant_amount == 700


def test_evaluation_without_damages_is_ignored():
    evaluation = CaseEvaluation(liability_percentage=80)
    moves = make_moves(("plaintiff", "demand", 200_000))
    suggestion = suggest_bracket(moves, evaluation=evaluation)
    assert suggestion.plaintiff_amount == 170_000
    assert suggestion.defendant_amount == 100_000
    assert "case evaluation" not in suggestion.reasoning

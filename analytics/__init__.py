"""
Analytics module for settlement negotiation tracking.

Components:
- CaseValuator: Damages/liability/policy based settlement range and recommendation
- compute_analytics: Convergence and prediction metrics over a move history
- suggest_bracket: Default bracket amounts for the next proposal
- parse_money / format_money: Shorthand money input and dollar display
"""
from .errors import NegotiationError, ValidationError, StateError, NotFoundError
from .money import parse_money, format_money, format_number, coerce_money
from .case_valuation import (
    CaseEvaluation,
    CaseValuator,
    ValuationResult,
    ScenarioComparison,
    SettlementRange,
    evaluate_case,
    compare_scenarios,
)
from .move_analytics import Move, MoveAnalytics, compute_analytics, recommend_next_move
from .bracket_suggestion import BracketSuggestion, suggest_bracket

"""
Bracket suggestion heuristics.

Proposes a plaintiff/defendant bracket ("plaintiff will be at X if defendant
is at Y") from the latest demand and offer, the case evaluation, the
settlement goal and the policy limit, in that order of preference.
"""
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any, Sequence

import numpy as np

from .case_valuation import CaseEvaluation, CaseValuator
from .money import format_money
from .move_analytics import Move

# Used when nothing else is known about the case
FALLBACK_PLAINTIFF_AMOUNT = 2_000_000
FALLBACK_DEFENDANT_AMOUNT = 750_000

MIN_BRACKET_AMOUNT = 1000


@dataclass
class BracketSuggestion:
    plaintiff_amount: int
    defendant_amount: int
    reasoning: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _round(value: float) -> int:
    return int(np.floor(value + 0.5))


def _last_amount(moves: Sequence[Move], party: str, move_type: str) -> Optional[float]:
    matching = [m.amount for m in moves if m.party == party and m.type == move_type]
    return matching[-1] if matching else None


def suggest_bracket(
    moves: Sequence[Move],
    evaluation: Optional[CaseEvaluation] = None,
    settlement_goal: Optional[float] = None,
    policy_limit: Optional[float] = None,
) -> BracketSuggestion:
    """
    Suggest bracket amounts for a negotiation.

    Args:
        moves: Chronological move history
        evaluation: Case evaluation inputs, if entered
        settlement_goal: The user's target settlement, if set
        policy_limit: Policy limit to respect; defaults to the evaluation's

    Returns:
        BracketSuggestion with rounded amounts and a human-readable reason
    """
    last_demand = _last_amount(moves, 'plaintiff', 'demand')
    last_offer = _last_amount(moves, 'defendant', 'offer')
    goal = settlement_goal or None

    if policy_limit is None and evaluation is not None:
        policy_limit = evaluation.policy_limit
    policy = policy_limit or None

    adjusted = range_low = range_high = None
    if evaluation is not None:
        # Zero liability still anchors the bracket once damages are entered
        valuator = CaseValuator()
        if valuator.total_damages(evaluation) > 0:
            adjusted = _round(valuator.adjusted_value(evaluation))

    if adjusted is not None:
        range_low = _round(adjusted * CaseValuator.RANGE_LOW_FACTOR)
        range_high = _round(adjusted * CaseValuator.RANGE_HIGH_FACTOR)

    if last_demand and last_offer:
        gap = last_demand - last_offer
        midpoint = last_offer + gap / 2

        if adjusted is not None and last_offer < adjusted < last_demand:
            cap = policy or range_high
            plaintiff = min(_round(range_high * 1.1), cap)
            defendant = _round(range_low * 0.9)
            reasoning = (
                f"Based on case evaluation (adjusted value: {format_money(adjusted)}), "
                f"projected settlement range of {format_money(range_low)} - {format_money(range_high)}. "
                f"Last demand: {format_money(last_demand)}, last offer: {format_money(last_offer)}. "
                f"Bracket positions parties within realistic settlement zone."
            )
            if policy and plaintiff >= policy:
                reasoning += f" Capped at policy limit of {format_money(policy)}."
        elif goal and last_offer < goal < last_demand:
            plaintiff = _round(goal * 1.15)
            defendant = _round(last_offer + (goal - last_offer) * 0.6)
            reasoning = (
                f"Based on settlement goal of {format_money(goal)}, "
                f"last demand of {format_money(last_demand)}, "
                f"and last offer of {format_money(last_offer)}. "
                f"This bracket positions both parties to move toward the settlement goal."
            )
        else:
            plaintiff = _round(midpoint + gap * 0.1)
            defendant = _round(midpoint - gap * 0.1)
            reasoning = (
                f"Based on last demand of {format_money(last_demand)} "
                f"and last offer of {format_money(last_offer)}. "
                f"This bracket narrows the gap while leaving room for both parties to move."
            )
            if adjusted is not None:
                reasoning += f" (Note: Case evaluation suggests {format_money(adjusted)} adjusted value.)"

    elif last_demand:
        if adjusted is not None and adjusted < last_demand:
            plaintiff = min(_round(range_high * 1.1), policy or range_high * 1.1)
            defendant = _round(range_low * 0.85)
            reasoning = (
                f"Based on case evaluation (adjusted value: {format_money(adjusted)}) "
                f"and last demand of {format_money(last_demand)}. "
                f"No defendant offer yet - bracket provides realistic starting range."
            )
        elif goal and goal < last_demand:
            plaintiff = _round(goal * 1.1)
            defendant = _round(goal * 0.7)
            reasoning = (
                f"Based on settlement goal of {format_money(goal)} "
                f"and last demand of {format_money(last_demand)}. "
                f"No defendant offer yet - bracket provides a starting negotiation range."
            )
        else:
            plaintiff = _round(last_demand * 0.85)
            defendant = _round(last_demand * 0.50)
            reasoning = (
                f"Based on last demand of {format_money(last_demand)}. "
                f"No defendant offer yet - bracket provides a reasonable negotiation range."
            )

    elif last_offer:
        if adjusted is not None and adjusted > last_offer:
            plaintiff = min(_round(range_high * 1.15), policy or range_high * 1.15)
            defendant = max(_round(range_low * 0.8), last_offer)
            reasoning = (
                f"Based on case evaluation (adjusted value: {format_money(adjusted)}) "
                f"and last offer of {format_money(last_offer)}. "
                f"No plaintiff demand yet - bracket provides realistic starting range."
            )
        elif goal and goal > last_offer:
            plaintiff = _round(goal * 1.2)
            defendant = _round(goal * 0.8)
            reasoning = (
                f"Based on settlement goal of {format_money(goal)} "
                f"and last offer of {format_money(last_offer)}. "
                f"No plaintiff demand yet - bracket provides a starting negotiation range."
            )
        else:
            plaintiff = _round(last_offer * 2.5)
            defendant = _round(last_offer * 1.3)
            reasoning = (
                f"Based on last offer of {format_money(last_offer)}. "
                f"No plaintiff demand yet - bracket provides a reasonable negotiation range."
            )

    else:
        if adjusted is not None:
            plaintiff = min(_round(range_high * 1.2), policy or range_high * 1.2)
            defendant = _round(range_low * 0.75)
            reasoning = (
                f"Based on case evaluation (adjusted value: {format_money(adjusted)}). "
                f"No moves yet - bracket provides realistic opening range based on damages and liability."
            )
            if policy and plaintiff >= policy:
                reasoning += f" Capped at policy limit of {format_money(policy)}."
        elif goal:
            plaintiff = _round(goal * 1.3)
            defendant = _round(goal * 0.7)
            reasoning = (
                f"Based on settlement goal of {format_money(goal)}. "
                f"No moves yet - bracket provides a starting negotiation range around the goal."
            )
        elif policy:
            plaintiff = _round(policy * 0.9)
            defendant = _round(policy * 0.5)
            reasoning = (
                f"Based on policy limit of {format_money(policy)}. "
                f"No moves or settlement goal - bracket provides a range within policy limits."
            )
        else:
            plaintiff = FALLBACK_PLAINTIFF_AMOUNT
            defendant = FALLBACK_DEFENDANT_AMOUNT
            reasoning = (
                "No moves, settlement goal, or policy limits available. "
                "Bracket uses typical personal injury negotiation amounts as a starting point."
            )

    plaintiff = max(plaintiff, MIN_BRACKET_AMOUNT)
    defendant = max(defendant, MIN_BRACKET_AMOUNT)

    if defendant >= plaintiff:
        plaintiff, defendant = defendant * 1.5, plaintiff * 0.7

    if policy and plaintiff > policy:
        plaintiff = _round(policy * 0.95)
        if defendant > plaintiff * 0.7:
            defendant = _round(plaintiff * 0.6)
        reasoning += f" Amounts adjusted to respect policy limit of {format_money(policy)}."

    return BracketSuggestion(
        plaintiff_amount=_round(plaintiff),
        defendant_amount=_round(defendant),
        reasoning=reasoning,
    )

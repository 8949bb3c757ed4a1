"""
Move history analytics.

Summarizes an ordered sequence of plaintiff demands and defendant offers into
convergence and prediction signals. Everything is recomputed from the move
list on each call; nothing here is persisted.
"""
from dataclasses import dataclass, asdict
from typing import Optional, List, Dict, Any, Sequence

import numpy as np

from .errors import ValidationError
from .money import format_money, coerce_money

PARTIES = ('plaintiff', 'defendant')
MOVE_TYPES = ('demand', 'offer')
EXPECTED_MOVE_TYPE = {'plaintiff': 'demand', 'defendant': 'offer'}

MAX_MONEY_VALUE = 1e9
MAX_NOTES_LENGTH = 5000

# Gap under this share of the latest offer counts as settled
SETTLED_GAP_RATIO = 0.05

# Weights for the predicted settlement
TRAJECTORY_WEIGHT = 0.7
HISTORICAL_WEIGHT = 0.3


@dataclass(frozen=True)
class Move:
    """A single demand or offer. Immutable once recorded."""
    party: str
    type: str
    amount: float
    timestamp: Optional[str] = None
    notes: Optional[str] = None
    id: Optional[int] = None
    negotiation_id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Move':
        return cls(
            party=row['party'],
            type=row['type'],
            amount=float(row['amount']),
            timestamp=row.get('timestamp'),
            notes=row.get('notes'),
            id=row.get('id'),
            negotiation_id=row.get('negotiation_id'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def validate_move(party: str, move_type: str, amount: Any, notes: Optional[str] = None) -> float:
    """
    Check a new move's fields.

    Returns:
        The amount as a float

    Raises:
        ValidationError listing every bad field
    """
    errors = {}
    if party not in PARTIES:
        errors['party'] = 'party must be one of: plaintiff, defendant'
    if move_type not in MOVE_TYPES:
        errors['type'] = 'type must be either "demand" or "offer"'
    elif party in PARTIES and move_type != EXPECTED_MOVE_TYPE[party]:
        errors['type'] = 'plaintiff moves must be demands and defendant moves must be offers'

    value = None
    if amount is None or amount == '':
        errors['amount'] = 'amount is required'
    else:
        value = coerce_money(amount)
        if value is None or value <= 0:
            errors['amount'] = 'amount must be a valid positive number'
        elif value > MAX_MONEY_VALUE:
            errors['amount'] = f"amount must be less than {format_money(MAX_MONEY_VALUE)}"

    if notes is not None and len(notes) > MAX_NOTES_LENGTH:
        errors['notes'] = f"notes must be less than {MAX_NOTES_LENGTH} characters"

    if errors:
        raise ValidationError("Validation failed", details=errors)
    return value


@dataclass
class MoveAnalytics:
    """Derived metrics for a move history."""
    midpoint: Optional[float]
    midpoint_of_midpoints: Optional[float]
    momentum: float
    convergence_rate: float
    predicted_settlement: Optional[int]
    confidence: float
    status: str
    move_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RecommendedMove:
    party: str
    type: str
    suggested_amount: int
    reasoning: str
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _amounts(moves: Sequence[Move], move_type: str) -> List[float]:
    return [m.amount for m in moves if m.type == move_type]


def calculate_midpoint(demand: float, offer: float) -> float:
    return (demand + offer) / 2


def calculate_momentum(moves: Sequence[Move]) -> float:
    """
    Average percentage movement of both sides since their first move.

    The plaintiff converges by coming down from the first demand, the
    defendant by coming up from the first offer. Positive means converging.
    """
    if len(moves) < 2:
        return 0.0
    demands = _amounts(moves, 'demand')
    offers = _amounts(moves, 'offer')
    if not demands or not offers:
        return 0.0

    demand_movement = (demands[0] - demands[-1]) / demands[0] * 100
    offer_movement = (offers[-1] - offers[0]) / offers[0] * 100
    return (demand_movement + offer_movement) / 2


def calculate_convergence_rate(moves: Sequence[Move]) -> float:
    """Percentage of the opening demand/offer gap closed so far."""
    if len(moves) < 2:
        return 0.0
    demands = _amounts(moves, 'demand')
    offers = _amounts(moves, 'offer')
    if not demands or not offers:
        return 0.0

    gap = abs(demands[-1] - offers[-1])
    initial_gap = abs(demands[0] - offers[0])
    if initial_gap == 0:
        return 0.0
    return (initial_gap - gap) / initial_gap * 100


def predict_settlement(moves: Sequence[Move]) -> Optional[int]:
    """Blend the current midpoint with the mean of every amount seen so far."""
    if len(moves) < 2:
        return None
    demands = _amounts(moves, 'demand')
    offers = _amounts(moves, 'offer')
    if not demands or not offers:
        return None

    trend = calculate_midpoint(demands[-1], offers[-1])
    historical = float(np.mean([m.amount for m in moves]))
    prediction = trend * TRAJECTORY_WEIGHT + historical * HISTORICAL_WEIGHT
    return int(np.floor(prediction + 0.5))


def calculate_midpoint_of_midpoints(moves: Sequence[Move]) -> Optional[float]:
    """Average of the i-th demand/offer midpoints, over the shorter sequence."""
    if len(moves) < 2:
        return None
    demands = _amounts(moves, 'demand')
    offers = _amounts(moves, 'offer')
    if not demands or not offers:
        return None

    pairs = min(len(demands), len(offers))
    midpoints = (np.array(demands[:pairs]) + np.array(offers[:pairs])) / 2
    return float(midpoints.mean())


def calculate_confidence(moves: Sequence[Move]) -> float:
    """0-100 score; rewards closed gap and positive momentum."""
    if len(moves) < 2:
        return 0.0
    convergence = calculate_convergence_rate(moves)
    momentum = calculate_momentum(moves)
    confidence = convergence * 0.6 + max(0.0, momentum) * 0.4
    return float(min(100.0, max(0.0, confidence)))


def determine_status(moves: Sequence[Move]) -> str:
    """initiated, active or settled (gap under 5% of the latest offer)."""
    if not moves:
        return 'initiated'
    demands = _amounts(moves, 'demand')
    offers = _amounts(moves, 'offer')
    if not demands or not offers:
        return 'active'

    gap = abs(demands[-1] - offers[-1])
    if gap / offers[-1] < SETTLED_GAP_RATIO:
        return 'settled'
    return 'active'


def compute_analytics(moves: Sequence[Move]) -> Optional[MoveAnalytics]:
    """
    Compute every metric for a chronological move list.

    Returns None when there are no moves, so callers can show an empty state
    instead of zeros.
    """
    if not moves:
        return None

    midpoint = None
    if len(moves) >= 2:
        demands = _amounts(moves, 'demand')
        offers = _amounts(moves, 'offer')
        if demands and offers:
            midpoint = calculate_midpoint(demands[-1], offers[-1])

    return MoveAnalytics(
        midpoint=midpoint,
        midpoint_of_midpoints=calculate_midpoint_of_midpoints(moves),
        momentum=calculate_momentum(moves),
        convergence_rate=calculate_convergence_rate(moves),
        predicted_settlement=predict_settlement(moves),
        confidence=calculate_confidence(moves),
        status=determine_status(moves),
        move_count=len(moves),
    )


def recommend_next_move(moves: Sequence[Move], settlement_goal: Optional[float] = None) -> Optional[RecommendedMove]:
    """
    Suggest the next demand or offer.

    The side that did not make the last move steps 70% of the way toward the
    settlement goal (or the midpoint without a goal), scaled by momentum, and
    stops 5% of the current gap short of the target. Steps are halved once
    the gap is under 15% of the latest offer.
    """
    if not moves:
        return None
    demands = _amounts(moves, 'demand')
    offers = _amounts(moves, 'offer')
    if not demands or not offers:
        return None

    last_demand = demands[-1]
    last_offer = offers[-1]
    current_gap = abs(last_demand - last_offer)
    last_move = moves[-1]
    party = 'plaintiff' if last_move.type == 'offer' else 'defendant'

    momentum = calculate_momentum(moves)
    momentum_adjustment = 1 + (momentum / 100) * 0.3

    target = settlement_goal if settlement_goal else calculate_midpoint(last_demand, last_offer)
    if party == 'plaintiff':
        step = (last_demand - target) * 0.7 * momentum_adjustment
        amount = max(target + current_gap * 0.05, last_demand - step)
    else:
        step = (target - last_offer) * 0.7 * momentum_adjustment
        amount = min(target - current_gap * 0.05, last_offer + step)

    if current_gap / last_offer < 0.15:
        if last_move.type == 'offer':
            amount = last_demand - (last_demand - amount) * 0.5
        else:
            amount = last_offer + (amount - last_offer) * 0.5

    return RecommendedMove(
        party=party,
        type='demand' if party == 'plaintiff' else 'offer',
        suggested_amount=int(np.floor(amount + 0.5)),
        reasoning=_move_reasoning(last_demand, last_offer, momentum, settlement_goal),
        confidence=calculate_confidence(moves),
    )


def _move_reasoning(last_demand: float, last_offer: float, momentum: float,
                    settlement_goal: Optional[float]) -> str:
    gap = abs(last_demand - last_offer)
    gap_percent = gap / last_offer * 100

    reasoning = f"Current gap: {format_money(gap)} ({gap_percent:.1f}% of offer). "
    if momentum > 5:
        reasoning += f"Good convergence momentum ({momentum:.1f}%). Make a modest move. "
    elif momentum < -5:
        reasoning += f"Diverging positions ({momentum:.1f}%). More aggressive movement needed. "
    else:
        reasoning += "Steady negotiation pace. "

    if settlement_goal:
        reasoning += f"Moving toward settlement goal of {format_money(settlement_goal)}."
    else:
        reasoning += "Moving toward midpoint consensus."
    return reasoning

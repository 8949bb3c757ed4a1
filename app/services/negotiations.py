"""
Negotiation records and their move histories.

Moves are stored as given and never edited; analytics, evaluation and
suggestions are recomputed from the stored rows on every request.
"""
import logging
from typing import Optional, List, Dict, Any

from analytics.bracket_suggestion import BracketSuggestion, suggest_bracket
from analytics.case_valuation import (
    CaseEvaluation,
    ValuationResult,
    evaluate_case,
    compare_to_prediction,
    policy_utilization,
)
from analytics.errors import ValidationError, NotFoundError
from analytics.money import format_money
from analytics.move_analytics import (
    Move,
    MoveAnalytics,
    RecommendedMove,
    MAX_MONEY_VALUE,
    compute_analytics,
    recommend_next_move,
    validate_move,
)
from db.database import Database

logger = logging.getLogger(__name__)


def create_negotiation(db: Database, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create a negotiation with optional settlement goal and evaluation inputs.

    Raises:
        ValidationError: missing name, bad goal or evaluation values
    """
    errors = {}
    name = (data.get('name') or '').strip()
    if not name:
        errors['name'] = 'name is required'

    goal = data.get('settlement_goal')
    if goal is not None and not (0 < goal <= MAX_MONEY_VALUE):
        errors['settlement_goal'] = f"settlement_goal must be between $1 and {format_money(MAX_MONEY_VALUE)}"

    # Stored rows are clamped on read; new input is rejected instead
    evaluation = None
    try:
        evaluation = CaseEvaluation.from_record(data, clamp=False)
    except ValidationError as e:
        errors.update(e.details)

    if errors:
        raise ValidationError("Validation failed", details=errors)

    row = db.create_negotiation({
        'name': name,
        'settlement_goal': goal,
        'medical_specials': evaluation.medical_specials,
        'economic_damages': evaluation.economic_damages,
        'non_economic_damages': evaluation.non_economic_damages,
        'policy_limits': evaluation.policy_limit,
        'liability_percentage': evaluation.liability_percentage,
        'jury_damages_likelihood': evaluation.jury_damages_likelihood,
    })
    logger.info(f"Created negotiation {row['id']} ({name})")
    return row


def get_negotiation(db: Database, negotiation_id: int) -> Dict[str, Any]:
    row = db.get_negotiation(negotiation_id)
    if row is None:
        raise NotFoundError("Negotiation not found")
    return row


def add_move(db: Database, negotiation_id: int, party: str, move_type: str, amount: Any,
             notes: Optional[str] = None) -> Move:
    value = validate_move(party, move_type, amount, notes)
    get_negotiation(db, negotiation_id)
    row = db.add_move(negotiation_id, party, move_type, value, notes)
    logger.info(f"Negotiation {negotiation_id}: {party} {move_type} of {format_money(value)}")
    return Move.from_row(row)


def list_moves(db: Database, negotiation_id: int) -> List[Move]:
    get_negotiation(db, negotiation_id)
    return [Move.from_row(r) for r in db.get_moves(negotiation_id)]


def delete_move(db: Database, move_id: int):
    if not db.delete_move(move_id):
        raise NotFoundError("Move not found")
    logger.info(f"Deleted move {move_id}")


def get_analytics(db: Database, negotiation_id: int) -> Optional[MoveAnalytics]:
    moves = list_moves(db, negotiation_id)
    analytics = compute_analytics(moves)
    logger.debug(f"Recomputed analytics for negotiation {negotiation_id} over {len(moves)} moves")
    return analytics


def get_recommendation(db: Database, negotiation_id: int) -> Optional[RecommendedMove]:
    negotiation = get_negotiation(db, negotiation_id)
    return recommend_next_move(list_moves(db, negotiation_id), negotiation.get('settlement_goal'))


def get_evaluation(db: Database, negotiation_id: int) -> Dict[str, Any]:
    """
    Valuation for a stored negotiation, placed against the move prediction.

    Returns has_evaluation False when no damages or liability were entered.
    """
    negotiation = get_negotiation(db, negotiation_id)
    evaluation = CaseEvaluation.from_record(negotiation)
    if not evaluation.has_data:
        return {'has_evaluation': False}

    result: ValuationResult = evaluate_case(evaluation)
    analytics = compute_analytics(list_moves(db, negotiation_id))
    predicted = analytics.predicted_settlement if analytics else None
    return {
        'has_evaluation': True,
        'evaluation': result.to_dict(),
        'predicted_settlement': predicted,
        'prediction_position': compare_to_prediction(result, predicted),
        'policy_utilization': policy_utilization(result, predicted),
    }


def get_bracket_suggestion(db: Database, negotiation_id: int) -> BracketSuggestion:
    negotiation = get_negotiation(db, negotiation_id)
    suggestion = suggest_bracket(
        list_moves(db, negotiation_id),
        evaluation=CaseEvaluation.from_record(negotiation),
        settlement_goal=negotiation.get('settlement_goal'),
    )
    logger.debug(
        f"Suggested bracket for negotiation {negotiation_id}: "
        f"{format_money(suggestion.plaintiff_amount)} / {format_money(suggestion.defendant_amount)}"
    )
    return suggestion

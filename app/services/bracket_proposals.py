"""
Bracket proposal workflow.

A bracket is a conditional offer ("plaintiff will be at X if defendant is at
Y"). Each proposal starts active and is resolved exactly once, to accepted
or rejected. Sides are expected to alternate, but that is only a default
offered to the UI.
"""
import logging
from dataclasses import dataclass, asdict
from typing import Optional, List, Dict, Any, Sequence

from analytics.errors import ValidationError, StateError, NotFoundError
from analytics.money import format_money, coerce_money
from analytics.move_analytics import PARTIES, MAX_MONEY_VALUE, MAX_NOTES_LENGTH
from db.database import Database

logger = logging.getLogger(__name__)

BRACKET_STATUSES = ('active', 'accepted', 'rejected')
BRACKET_DECISIONS = ('accepted', 'rejected')


@dataclass
class BracketProposal:
    id: int
    negotiation_id: int
    plaintiff_amount: float
    defendant_amount: float
    proposed_by: str
    status: str
    notes: Optional[str]
    created_at: str

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'BracketProposal':
        return cls(
            id=row['id'],
            negotiation_id=row['negotiation_id'],
            plaintiff_amount=row['plaintiff_amount'],
            defendant_amount=row['defendant_amount'],
            proposed_by=row.get('proposed_by') or 'plaintiff',
            status=row['status'],
            notes=row.get('notes'),
            created_at=row['created_at'],
        )

    @property
    def is_active(self) -> bool:
        return self.status == 'active'

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _positive_amount(name: str, value: Any, errors: Dict[str, str]) -> Optional[float]:
    if value is None or value == '':
        errors[name] = f"{name} is required"
        return None
    amount = coerce_money(value)
    if amount is None or amount <= 0:
        errors[name] = f"{name} must be a positive number"
        return None
    if amount > MAX_MONEY_VALUE:
        errors[name] = f"{name} must be less than {format_money(MAX_MONEY_VALUE)}"
        return None
    return amount


def validate_bracket(plaintiff_amount: Any, defendant_amount: Any,
                     proposed_by: Optional[str], notes: Optional[str]):
    """
    Check bracket inputs.

    Returns:
        (plaintiff_amount, defendant_amount, proposed_by) normalized

    Raises:
        ValidationError with per-field details
    """
    errors: Dict[str, str] = {}
    plaintiff = _positive_amount('plaintiff_amount', plaintiff_amount, errors)
    defendant = _positive_amount('defendant_amount', defendant_amount, errors)

    proposer = proposed_by or 'plaintiff'
    if proposer not in PARTIES:
        errors['proposed_by'] = 'proposed_by must be either "plaintiff" or "defendant"'

    if notes is not None and len(notes) > MAX_NOTES_LENGTH:
        errors['notes'] = f"notes must be less than {MAX_NOTES_LENGTH} characters"

    if errors:
        raise ValidationError("Validation failed", details=errors)
    return plaintiff, defendant, proposer


def create_bracket(db: Database, negotiation_id: int, plaintiff_amount: Any, defendant_amount: Any,
                   proposed_by: Optional[str] = None, notes: Optional[str] = None) -> BracketProposal:
    """Record a new active bracket proposal for a negotiation."""
    plaintiff, defendant, proposer = validate_bracket(plaintiff_amount, defendant_amount, proposed_by, notes)

    if db.get_negotiation(negotiation_id) is None:
        raise NotFoundError("Negotiation not found")

    row = db.create_bracket(negotiation_id, plaintiff, defendant, proposer, notes)
    bracket = BracketProposal.from_row(row)
    logger.info(
        f"Bracket {bracket.id} proposed by {proposer} on negotiation {negotiation_id}: "
        f"{format_money(plaintiff)} / {format_money(defendant)}"
    )
    return bracket


def get_bracket(db: Database, bracket_id: int) -> BracketProposal:
    row = db.get_bracket(bracket_id)
    if row is None:
        raise NotFoundError("Bracket not found")
    return BracketProposal.from_row(row)


def list_brackets(db: Database, negotiation_id: int) -> List[BracketProposal]:
    """All brackets for a negotiation, most recent first."""
    return [BracketProposal.from_row(r) for r in db.get_brackets(negotiation_id)]


def respond_bracket(db: Database, bracket_id: int, decision: str,
                    notes: Optional[str] = None) -> BracketProposal:
    """
    Accept or reject an active bracket.

    Raises:
        ValidationError: decision is not accepted/rejected, or notes too long
        NotFoundError: no such bracket
        StateError: the bracket was already resolved
    """
    errors = {}
    if decision not in BRACKET_DECISIONS:
        errors['status'] = 'status must be either "accepted" or "rejected"'
    if notes is not None and len(notes) > MAX_NOTES_LENGTH:
        errors['notes'] = f"notes must be less than {MAX_NOTES_LENGTH} characters"
    if errors:
        raise ValidationError("Validation failed", details=errors)

    if not db.resolve_bracket(bracket_id, decision, notes):
        current = db.get_bracket(bracket_id)
        if current is None:
            raise NotFoundError("Bracket not found")
        logger.warning(f"Bracket {bracket_id} is already {current['status']}; ignoring {decision}")
        raise StateError(f"Bracket has already been {current['status']}",
                         details={'status': current['status']})

    logger.info(f"Bracket {bracket_id} {decision}")
    return get_bracket(db, bracket_id)


def suggest_next_proposer(proposals: Sequence[BracketProposal]) -> str:
    """
    Side expected to propose next: the opposite of the most recent proposer.

    Plaintiff opens when there are no proposals yet.
    """
    if not proposals:
        return 'plaintiff'
    latest = max(proposals, key=lambda p: (p.created_at, p.id))
    return 'defendant' if latest.proposed_by == 'plaintiff' else 'plaintiff'

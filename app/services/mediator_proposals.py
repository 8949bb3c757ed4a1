"""
Mediator's proposal workflow.

A mediator puts a single number to both sides with a deadline. Each side
accepts or rejects independently; the proposal settles only when both
accept. There is at most one proposal per negotiation and creating a new one
replaces the old one outright.

Status is derived from the two responses and the deadline, so reads always
re-check expiry against the current time.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Union

from analytics.errors import ValidationError, StateError, NotFoundError
from analytics.money import format_money, coerce_money
from analytics.move_analytics import PARTIES, MAX_MONEY_VALUE, MAX_NOTES_LENGTH
from db.database import Database, utc_now

logger = logging.getLogger(__name__)

RESPONSES = ('accepted', 'rejected')
TERMINAL_STATUSES = ('accepted_both', 'rejected', 'expired')


def to_iso(moment: datetime) -> str:
    """Fixed-width UTC timestamp so stored deadlines compare as strings."""
    return moment.astimezone(timezone.utc).isoformat(timespec='microseconds')


def parse_deadline(value: Union[str, datetime, None]) -> datetime:
    """
    Parse a deadline into an aware UTC datetime.

    Accepts datetimes or ISO 8601 strings (a trailing "Z" is allowed). Naive
    values are taken to be UTC.
    """
    if value is None or value == '':
        raise ValidationError("Validation failed", details={'deadline': 'Deadline is required'})

    if isinstance(value, datetime):
        moment = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError("Validation failed",
                                  details={'deadline': 'Deadline must be a valid date'})

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def derive_status(plaintiff_response: Optional[str], defendant_response: Optional[str],
                  deadline: datetime, now: datetime) -> str:
    """
    Status from the two responses and the clock.

    Any rejection wins, then both accepted, then a single acceptance. Only a
    proposal nobody has answered can expire.
    """
    if plaintiff_response == 'rejected' or defendant_response == 'rejected':
        return 'rejected'
    if plaintiff_response == 'accepted' and defendant_response == 'accepted':
        return 'accepted_both'
    if plaintiff_response == 'accepted':
        return 'accepted_plaintiff'
    if defendant_response == 'accepted':
        return 'accepted_defendant'
    if now > deadline:
        return 'expired'
    return 'pending'


@dataclass
class MediatorProposal:
    id: int
    negotiation_id: int
    amount: float
    deadline: datetime
    status: str
    plaintiff_response: Optional[str] = None
    defendant_response: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any], now: Optional[datetime] = None) -> 'MediatorProposal':
        deadline = parse_deadline(row['deadline'])
        status = row.get('status') or 'pending'
        if status not in TERMINAL_STATUSES:
            status = derive_status(row.get('plaintiff_response'), row.get('defendant_response'),
                                   deadline, now or utc_now())
        return cls(
            id=row['id'],
            negotiation_id=row['negotiation_id'],
            amount=row['amount'],
            deadline=deadline,
            status=status,
            plaintiff_response=row.get('plaintiff_response'),
            defendant_response=row.get('defendant_response'),
            notes=row.get('notes'),
            created_at=row.get('created_at'),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'negotiation_id': self.negotiation_id,
            'amount': self.amount,
            'deadline': to_iso(self.deadline),
            'status': self.status,
            'plaintiff_response': self.plaintiff_response,
            'defendant_response': self.defendant_response,
            'notes': self.notes,
            'created_at': self.created_at,
        }


def create_mediator_proposal(db: Database, negotiation_id: int, amount: Any, deadline: Union[str, datetime],
                             notes: Optional[str] = None, now: Optional[datetime] = None) -> MediatorProposal:
    """
    Create the negotiation's mediator proposal, replacing any existing one.

    Raises:
        ValidationError: bad amount, deadline not strictly in the future, notes too long
        NotFoundError: no such negotiation
    """
    now = now or utc_now()
    errors = {}

    value = coerce_money(amount)
    if value is None or value <= 0:
        errors['amount'] = 'Amount must be a positive number'
    elif value > MAX_MONEY_VALUE:
        errors['amount'] = f"Amount must be less than {format_money(MAX_MONEY_VALUE)}"

    when = None
    try:
        when = parse_deadline(deadline)
    except ValidationError as e:
        errors.update(e.details)
    if when is not None and when <= now:
        errors['deadline'] = 'Deadline must be in the future'

    if notes is not None and len(notes) > MAX_NOTES_LENGTH:
        errors['notes'] = f"notes must be less than {MAX_NOTES_LENGTH} characters"

    if errors:
        logger.warning(f"Rejected mediator proposal for negotiation {negotiation_id}: {errors}")
        raise ValidationError("Validation failed", details=errors)

    if db.get_negotiation(negotiation_id) is None:
        raise NotFoundError("Negotiation not found")

    with db.transaction() as conn:
        replaced = db.get_mediator_proposal(negotiation_id, conn=conn) is not None
        row = db.replace_mediator_proposal(conn, negotiation_id, value, to_iso(when), notes, to_iso(now))

    proposal = MediatorProposal.from_row(row, now)
    action = "replaced" if replaced else "created"
    logger.info(
        f"Mediator proposal {action} for negotiation {negotiation_id}: "
        f"{format_money(value)} due {proposal.deadline.isoformat()}"
    )
    return proposal


def get_mediator_proposal(db: Database, negotiation_id: int,
                          now: Optional[datetime] = None) -> Optional[MediatorProposal]:
    """
    Current proposal with its status re-derived against now.

    An unanswered proposal found past its deadline is marked expired in
    storage as well.
    """
    now = now or utc_now()
    row = db.get_mediator_proposal(negotiation_id)
    if row is None:
        return None

    proposal = MediatorProposal.from_row(row, now)
    if proposal.status == 'expired' and row.get('status') != 'expired':
        db.update_mediator_proposal(negotiation_id, {'status': 'expired'}, expected_status='pending')
        logger.info(f"Mediator proposal for negotiation {negotiation_id} expired")
    else:
        logger.debug(f"Mediator proposal for negotiation {negotiation_id} is {proposal.status}")
    return proposal


def respond_mediator_proposal(db: Database, negotiation_id: int, party: str, decision: str,
                              now: Optional[datetime] = None) -> MediatorProposal:
    """
    Record one party's response and recompute the status.

    The read and write happen in one transaction, so a plaintiff and a
    defendant accepting at the same moment both land.

    Raises:
        ValidationError: unknown party or decision
        NotFoundError: no proposal for the negotiation
        StateError: proposal already decided or past its deadline
    """
    errors = {}
    if party not in PARTIES:
        errors['party'] = 'Party must be either "plaintiff" or "defendant"'
    if decision not in RESPONSES:
        errors['response'] = 'Response must be either "accepted" or "rejected"'
    if errors:
        raise ValidationError("Validation failed", details=errors)

    now = now or utc_now()
    with db.transaction() as conn:
        row = db.get_mediator_proposal(negotiation_id, conn=conn)
        if row is None:
            raise NotFoundError("Mediator proposal not found")

        current = MediatorProposal.from_row(row, now)
        if current.is_terminal:
            logger.warning(
                f"Ignoring {party} {decision} on negotiation {negotiation_id}: proposal is {current.status}"
            )
            raise StateError(f"Mediator proposal is already {current.status}",
                             details={'status': current.status})
        if now > current.deadline:
            raise StateError("Proposal has expired", details={'status': current.status})

        updates = {f"{party}_response": decision}
        plaintiff = decision if party == 'plaintiff' else current.plaintiff_response
        defendant = decision if party == 'defendant' else current.defendant_response
        updates['status'] = derive_status(plaintiff, defendant, current.deadline, now)

        db.update_mediator_proposal(negotiation_id, updates, conn=conn)
        row = db.get_mediator_proposal(negotiation_id, conn=conn)

    proposal = MediatorProposal.from_row(row, now)
    logger.info(f"Mediator proposal for negotiation {negotiation_id}: {party} {decision} -> {proposal.status}")
    return proposal


def expire_overdue(db: Database, now: Optional[datetime] = None) -> int:
    """Mark every unanswered proposal past its deadline as expired."""
    count = db.expire_mediator_proposals(to_iso(now or utc_now()))
    if count:
        logger.info(f"Marked {count} mediator proposals as expired")
    return count

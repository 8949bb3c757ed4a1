"""Tests for the mediator's proposal workflow."""
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from analytics.errors import ValidationError, StateError, NotFoundError
from app.services.mediator_proposals import (
    create_mediator_proposal,
    derive_status,
    expire_overdue,
    get_mediator_proposal,
    parse_deadline,
    respond_mediator_proposal,
)
from conftest import NOW

DEADLINE = NOW + timedelta(days=2)
AFTER_DEADLINE = NOW + timedelta(days=3)


@pytest.fixture
def proposal(db, negotiation):
    return create_mediator_proposal(db, negotiation["id"], 450_000, DEADLINE, notes="Final number", now=NOW)


def test_create_starts_pending(proposal, negotiation):
    assert proposal.status == "pending"
    assert proposal.amount == 450_000
    assert proposal.deadline == DEADLINE
    assert proposal.negotiation_id == negotiation["id"]
    assert proposal.plaintiff_response is None
    assert proposal.defendant_response is None


@pytest.mark.parametrize("deadline", [NOW - timedelta(hours=1), NOW])
def test_deadline_must_be_in_future(db, negotiation, deadline):
    with pytest.raises(ValidationError) as exc:
        create_mediator_proposal(db, negotiation["id"], 450_000, deadline, now=NOW)
    assert exc.value.details["deadline"] == "Deadline must be in the future"
    assert get_mediator_proposal(db, negotiation["id"], now=NOW) is None


def test_create_accepts_iso_strings(db, negotiation):
    proposal = create_mediator_proposal(db, negotiation["id"], 450_000, "2026-01-20T17:00:00Z", now=NOW)
    assert proposal.deadline.isoformat() == "2026-01-20T17:00:00+00:00"


def test_create_accepts_shorthand_amount(db, negotiation):
    proposal = create_mediator_proposal(db, negotiation["id"], "450k", DEADLINE, now=NOW)
    assert proposal.amount == 450_000

    proposal = create_mediator_proposal(db, negotiation["id"], "$1,250,000", DEADLINE, now=NOW)
    assert proposal.amount == 1_250_000


@pytest.mark.parametrize("amount,deadline,field", [
    (0, DEADLINE, "amount"),
    (None, DEADLINE, "amount"),
    (2e9, DEADLINE, "amount"),
    ("lots", DEADLINE, "amount"),
    (450_000, "next friday", "deadline"),
    (450_000, None, "deadline"),
])
def test_create_rejects_bad_input(db, negotiation, amount, deadline, field):
    with pytest.raises(ValidationError) as exc:
        create_mediator_proposal(db, negotiation["id"], amount, deadline, now=NOW)
    assert field in exc.value.details


def test_create_for_unknown_negotiation(db):
    with pytest.raises(NotFoundError):
        create_mediator_proposal(db, 999, 450_000, DEADLINE, now=NOW)


def test_both_accept(db, proposal):
    nid = proposal.negotiation_id
    after_plaintiff = respond_mediator_proposal(db, nid, "plaintiff", "accepted", now=NOW)
    assert after_plaintiff.status == "accepted_plaintiff"

    after_both = respond_mediator_proposal(db, nid, "defendant", "accepted", now=NOW)
    assert after_both.status == "accepted_both"
    assert after_both.plaintiff_response == "accepted"
    assert after_both.defendant_response == "accepted"

    with pytest.raises(StateError):
        respond_mediator_proposal(db, nid, "plaintiff", "rejected", now=NOW)


def test_defendant_first_then_plaintiff(db, proposal):
    nid = proposal.negotiation_id
    assert respond_mediator_proposal(db, nid, "defendant", "accepted", now=NOW).status == "accepted_defendant"
    assert respond_mediator_proposal(db, nid, "plaintiff", "accepted", now=NOW).status == "accepted_both"


def test_rejection_is_terminal(db, proposal):
    nid = proposal.negotiation_id
    assert respond_mediator_proposal(db, nid, "plaintiff", "rejected", now=NOW).status == "rejected"

    with pytest.raises(StateError):
        respond_mediator_proposal(db, nid, "defendant", "accepted", now=NOW)
    assert get_mediator_proposal(db, nid, now=NOW).status == "rejected"


def test_party_can_change_own_response(db, proposal):
    nid = proposal.negotiation_id
    respond_mediator_proposal(db, nid, "plaintiff", "accepted", now=NOW)
    again = respond_mediator_proposal(db, nid, "plaintiff", "accepted", now=NOW)
    assert again.status == "accepted_plaintiff"

    changed = respond_mediator_proposal(db, nid, "plaintiff", "rejected", now=NOW)
    assert changed.status == "rejected"


def test_respond_validates_input(db, proposal):
    with pytest.raises(ValidationError) as exc:
        respond_mediator_proposal(db, proposal.negotiation_id, "mediator", "maybe", now=NOW)
    assert set(exc.value.details) == {"party", "response"}


def test_respond_without_proposal(db, negotiation):
    with pytest.raises(NotFoundError):
        respond_mediator_proposal(db, negotiation["id"], "plaintiff", "accepted", now=NOW)


def test_expires_on_read(db, proposal):
    nid = proposal.negotiation_id
    assert get_mediator_proposal(db, nid, now=NOW).status == "pending"
    assert get_mediator_proposal(db, nid, now=AFTER_DEADLINE).status == "expired"

    with pytest.raises(StateError):
        respond_mediator_proposal(db, nid, "plaintiff", "accepted", now=AFTER_DEADLINE)
    # expiry was persisted
    assert db.get_mediator_proposal(nid)["status"] == "expired"


def test_partial_acceptance_does_not_expire_but_blocks_late_response(db, proposal):
    nid = proposal.negotiation_id
    respond_mediator_proposal(db, nid, "plaintiff", "accepted", now=NOW)

    assert get_mediator_proposal(db, nid, now=AFTER_DEADLINE).status == "accepted_plaintiff"
    with pytest.raises(StateError):
        respond_mediator_proposal(db, nid, "defendant", "accepted", now=AFTER_DEADLINE)


def test_new_proposal_replaces_old(db, proposal):
    nid = proposal.negotiation_id
    respond_mediator_proposal(db, nid, "plaintiff", "accepted", now=NOW)

    replacement = create_mediator_proposal(db, nid, 500_000, DEADLINE + timedelta(days=1), now=NOW)
    assert replacement.status == "pending"
    assert replacement.amount == 500_000
    assert replacement.plaintiff_response is None

    current = get_mediator_proposal(db, nid, now=NOW)
    assert current.id == replacement.id


def test_expire_overdue_only_touches_unanswered(db, proposal):
    other = db.create_negotiation({"name": "Doe v. Roe"})
    create_mediator_proposal(db, other["id"], 80_000, DEADLINE, now=NOW)
    respond_mediator_proposal(db, other["id"], "defendant", "accepted", now=NOW)

    assert expire_overdue(db, now=NOW) == 0
    assert expire_overdue(db, now=AFTER_DEADLINE) == 1
    assert get_mediator_proposal(db, proposal.negotiation_id, now=AFTER_DEADLINE).status == "expired"
    assert get_mediator_proposal(db, other["id"], now=AFTER_DEADLINE).status == "accepted_defendant"


def test_concurrent_acceptances_both_land(db, proposal):
    nid = proposal.negotiation_id

    def accept(party):
        return respond_mediator_proposal(db, nid, party, "accepted", now=NOW).status

    with ThreadPoolExecutor(max_workers=2) as pool:
        list(pool.map(accept, ["plaintiff", "defendant"]))

    assert get_mediator_proposal(db, nid, now=NOW).status == "accepted_both"


@pytest.mark.parametrize("plaintiff,defendant,now,expected", [
    (None, None, NOW, "pending"),
    (None, None, AFTER_DEADLINE, "expired"),
    ("accepted", None, NOW, "accepted_plaintiff"),
    (None, "accepted", NOW, "accepted_defendant"),
    ("accepted", "accepted", NOW, "accepted_both"),
    ("accepted", "rejected", NOW, "rejected"),
    ("rejected", None, AFTER_DEADLINE, "rejected"),
])
def test_derive_status(plaintiff, defendant, now, expected):
    assert derive_status(plaintiff, defendant, DEADLINE, now) == expected


def test_parse_deadline_treats_naive_as_utc():
    parsed = parse_deadline("2026-01-20T17:00:00")
    assert parsed.utcoffset() == timedelta(0)
    assert parsed.hour == 17

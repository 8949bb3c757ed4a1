from fastapi import FastAPI, Request, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Optional, Union
import logging

from analytics.case_valuation import CaseEvaluation, evaluate_case, compare_scenarios
from analytics.errors import NegotiationError, ValidationError, StateError, NotFoundError
from db.database import Database
from .config import Settings, configure_logging
from .services import negotiations
from .services import bracket_proposals
from .services import mediator_proposals

logger = logging.getLogger(__name__)

app = FastAPI(title="Settlement Negotiation Tracker")

_db: Optional[Database] = None


def _ensure_initialized() -> Database:
    """Lazy initialization of settings, logging and the database."""
    global _db
    if _db is not None:
        return _db

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    _db = Database(settings.db_path)
    logger.info(f"Using negotiation database at {settings.db_path}")
    return _db


def get_database() -> Database:
    return _ensure_initialized()


# -----------------------------------------------------------------------------
# Error handling
# -----------------------------------------------------------------------------

ERROR_STATUS = {
    ValidationError: 400,
    NotFoundError: 404,
    StateError: 409,
}


@app.exception_handler(NegotiationError)
async def negotiation_error_handler(request: Request, exc: NegotiationError) -> JSONResponse:
    status_code = ERROR_STATUS.get(type(exc), 400)
    logger.warning(f"{request.method} {request.url.path} -> {status_code}: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# -----------------------------------------------------------------------------
# Request bodies
# -----------------------------------------------------------------------------

Money = Optional[Union[float, str]]


class EvaluationBody(BaseModel):
    medical_specials: Money = None
    economic_damages: Money = None
    non_economic_damages: Money = None
    policy_limit: Money = None
    liability_percentage: Optional[float] = None
    jury_damages_likelihood: Optional[float] = None


class CompareBody(BaseModel):
    current: EvaluationBody
    hypothetical: EvaluationBody


class NegotiationBody(EvaluationBody):
    name: str
    settlement_goal: Optional[float] = None


class MoveBody(BaseModel):
    party: str
    type: str
    amount: Money = None
    notes: Optional[str] = None


class BracketBody(BaseModel):
    plaintiff_amount: Money = None
    defendant_amount: Money = None
    proposed_by: Optional[str] = None
    notes: Optional[str] = None


class BracketResponseBody(BaseModel):
    status: str
    notes: Optional[str] = None


class MediatorProposalBody(BaseModel):
    amount: Money = None
    deadline: Optional[str] = None
    notes: Optional[str] = None


class MediatorResponseBody(BaseModel):
    party: str
    response: str


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------

@app.get("/v1/health")
def health():
    _ensure_initialized()
    return {"ok": True}


@app.post("/v1/negotiations")
def api_create_negotiation(body: NegotiationBody, db: Database = Depends(get_database)):
    return negotiations.create_negotiation(db, body.model_dump())


@app.get("/v1/negotiations/{negotiation_id}")
def api_get_negotiation(negotiation_id: int, db: Database = Depends(get_database)):
    return negotiations.get_negotiation(db, negotiation_id)


# === Case evaluation ===

@app.post("/v1/evaluate")
def api_evaluate(body: EvaluationBody):
    """Value a case from damages, liability and policy inputs (shorthand like "50k" accepted)."""
    return evaluate_case(CaseEvaluation.from_record(body.model_dump(), clamp=False)).to_dict()


@app.post("/v1/evaluate/compare")
def api_compare_scenarios(body: CompareBody):
    """Compare the current evaluation against a what-if scenario."""
    current = CaseEvaluation.from_record(body.current.model_dump(), clamp=False)
    hypothetical = CaseEvaluation.from_record(body.hypothetical.model_dump(), clamp=False)
    return compare_scenarios(current, hypothetical).to_dict()


@app.get("/v1/negotiations/{negotiation_id}/evaluation")
def api_negotiation_evaluation(negotiation_id: int, db: Database = Depends(get_database)):
    return negotiations.get_evaluation(db, negotiation_id)


# === Moves & analytics ===

@app.post("/v1/negotiations/{negotiation_id}/moves")
def api_add_move(negotiation_id: int, body: MoveBody, db: Database = Depends(get_database)):
    move = negotiations.add_move(db, negotiation_id, body.party, body.type, body.amount, body.notes)
    return move.to_dict()


@app.get("/v1/negotiations/{negotiation_id}/moves")
def api_list_moves(negotiation_id: int, db: Database = Depends(get_database)):
    return [m.to_dict() for m in negotiations.list_moves(db, negotiation_id)]


@app.delete("/v1/moves/{move_id}")
def api_delete_move(move_id: int, db: Database = Depends(get_database)):
    negotiations.delete_move(db, move_id)
    return {"status": "deleted"}


@app.get("/v1/negotiations/{negotiation_id}/analytics")
def api_analytics(negotiation_id: int, db: Database = Depends(get_database)):
    """Convergence metrics; analytics is null when no moves exist yet."""
    analytics = negotiations.get_analytics(db, negotiation_id)
    return {"analytics": analytics.to_dict() if analytics else None}


@app.get("/v1/negotiations/{negotiation_id}/recommendation")
def api_recommendation(negotiation_id: int, db: Database = Depends(get_database)):
    recommendation = negotiations.get_recommendation(db, negotiation_id)
    return {"recommendation": recommendation.to_dict() if recommendation else None}


# === Brackets ===

@app.get("/v1/negotiations/{negotiation_id}/brackets")
def api_list_brackets(negotiation_id: int, db: Database = Depends(get_database)):
    negotiations.get_negotiation(db, negotiation_id)
    brackets = bracket_proposals.list_brackets(db, negotiation_id)
    return {
        "brackets": [b.to_dict() for b in brackets],
        "next_proposer": bracket_proposals.suggest_next_proposer(brackets),
    }


@app.post("/v1/negotiations/{negotiation_id}/brackets")
def api_create_bracket(negotiation_id: int, body: BracketBody, db: Database = Depends(get_database)):
    bracket = bracket_proposals.create_bracket(
        db,
        negotiation_id,
        body.plaintiff_amount,
        body.defendant_amount,
        proposed_by=body.proposed_by,
        notes=body.notes,
    )
    return bracket.to_dict()


@app.post("/v1/negotiations/{negotiation_id}/brackets/suggest")
def api_suggest_bracket(negotiation_id: int, db: Database = Depends(get_database)):
    return negotiations.get_bracket_suggestion(db, negotiation_id).to_dict()


@app.put("/v1/brackets/{bracket_id}")
def api_respond_bracket(bracket_id: int, body: BracketResponseBody, db: Database = Depends(get_database)):
    return bracket_proposals.respond_bracket(db, bracket_id, body.status, body.notes).to_dict()


# === Mediator proposals ===

@app.get("/v1/negotiations/{negotiation_id}/mediator-proposal")
def api_get_mediator_proposal(negotiation_id: int, db: Database = Depends(get_database)):
    negotiations.get_negotiation(db, negotiation_id)
    proposal = mediator_proposals.get_mediator_proposal(db, negotiation_id)
    return proposal.to_dict() if proposal else None


@app.post("/v1/negotiations/{negotiation_id}/mediator-proposal")
def api_create_mediator_proposal(negotiation_id: int, body: MediatorProposalBody,
                                 db: Database = Depends(get_database)):
    proposal = mediator_proposals.create_mediator_proposal(
        db, negotiation_id, body.amount, body.deadline, body.notes
    )
    return proposal.to_dict()


@app.put("/v1/negotiations/{negotiation_id}/mediator-proposal")
def api_respond_mediator_proposal(negotiation_id: int, body: MediatorResponseBody,
                                  db: Database = Depends(get_database)):
    proposal = mediator_proposals.respond_mediator_proposal(db, negotiation_id, body.party, body.response)
    return proposal.to_dict()


@app.post("/v1/mediator-proposals/check-expired")
def api_check_expired(db: Database = Depends(get_database)):
    count = mediator_proposals.expire_overdue(db)
    return {"expired": count, "message": f"Marked {count} proposals as expired"}

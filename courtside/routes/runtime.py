"""
Match runtime: start, score, undo, complete.
Completing a match advances the winner (and loser, where wired) and hands the
freed court to the next waiting match in the same transaction.
"""
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session

from courtside.database import get_session
from courtside.routes.bracket import MatchResponse
from courtside.routes.engine_errors import http_error
from courtside.services.completion import complete_match
from courtside.services.errors import EngineError
from courtside.services.match_runtime import record_score, start_match, undo_last_action

router = APIRouter()


class ScoreRequest(BaseModel):
    side: Literal["player1", "player2"]
    delta: int = 1


class CompleteRequest(BaseModel):
    player1: int = Field(ge=0)
    player2: int = Field(ge=0)


class CompleteResponse(BaseModel):
    match: MatchResponse
    winner_id: str
    loser_id: Optional[str] = None
    advanced_to: List[str] = []
    dispatched_match_id: Optional[str] = None
    qualifiers_resolved: int = 0


@router.post("/matches/{match_id}/start", response_model=MatchResponse)
def start(match_id: str, session: Session = Depends(get_session)):
    try:
        return start_match(session, match_id)
    except EngineError as e:
        raise http_error(e)


@router.post("/matches/{match_id}/score", response_model=MatchResponse)
def score(match_id: str, payload: ScoreRequest, session: Session = Depends(get_session)):
    try:
        return record_score(session, match_id, payload.side, payload.delta)
    except EngineError as e:
        raise http_error(e)


@router.post("/matches/{match_id}/undo", response_model=MatchResponse)
def undo(match_id: str, session: Session = Depends(get_session)):
    try:
        return undo_last_action(session, match_id)
    except EngineError as e:
        raise http_error(e)


@router.post("/matches/{match_id}/complete", response_model=CompleteResponse)
def complete(match_id: str, payload: CompleteRequest, session: Session = Depends(get_session)):
    """Finalize with the given totals. Ties are rejected; a second completion is a 409."""
    try:
        result = complete_match(session, match_id, payload.model_dump())
    except EngineError as e:
        raise http_error(e)
    return CompleteResponse(
        match=MatchResponse.model_validate(result.match),
        winner_id=result.winner_id,
        loser_id=result.loser_id,
        advanced_to=result.advanced_to,
        dispatched_match_id=result.dispatched_match_id,
        qualifiers_resolved=result.qualifiers_resolved,
    )

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlmodel import Session, func, select

from courtside.database import get_session
from courtside.models.court import COURT_IN_USE, Court
from courtside.models.match import Match, MatchStatus
from courtside.models.tournament import Tournament
from courtside.routes.bracket import MatchResponse
from courtside.routes.engine_errors import http_error
from courtside.services.completion import dispatch_court
from courtside.services.court_allocator import reassign_courts, tournament_courts
from courtside.services.errors import EngineError

router = APIRouter()


class CourtCreate(BaseModel):
    name: str
    order: Optional[int] = None  # appended after the last court when omitted

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()


class CourtResponse(BaseModel):
    id: int
    tournament_id: int
    name: str
    order: int
    status: str
    current_match_id: Optional[str] = None
    updated_at: datetime

    class Config:
        from_attributes = True


class ReassignRequest(BaseModel):
    category_id: Optional[int] = None  # None = every category in the tournament


class ReassignResponse(BaseModel):
    succeeded: int
    skipped: int


class DispatchResponse(BaseModel):
    dispatched: bool
    match: Optional[MatchResponse] = None


def _require_tournament(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


@router.get("/tournaments/{tournament_id}/courts", response_model=List[CourtResponse])
def list_courts(tournament_id: int, session: Session = Depends(get_session)):
    """Courts in allocation (display) order"""
    _require_tournament(session, tournament_id)
    return tournament_courts(session, tournament_id)


@router.post("/tournaments/{tournament_id}/courts", response_model=CourtResponse, status_code=201)
def create_court(tournament_id: int, court_data: CourtCreate, session: Session = Depends(get_session)):
    _require_tournament(session, tournament_id)

    order = court_data.order
    if order is None:
        last = session.exec(select(func.max(Court.order)).where(Court.tournament_id == tournament_id)).one()
        order = (last or 0) + 1

    court = Court(tournament_id=tournament_id, name=court_data.name, order=order)
    session.add(court)
    session.commit()
    session.refresh(court)
    return court


@router.delete("/courts/{court_id}", status_code=204)
def delete_court(court_id: int, session: Session = Depends(get_session)):
    """Delete a court. Refused while a match occupies it or is being played on it."""
    court = session.get(Court, court_id)
    if not court:
        raise HTTPException(status_code=404, detail="Court not found")
    in_play = session.exec(
        select(Match).where(Match.court_id == court_id, Match.status == MatchStatus.IN_PROGRESS)
    ).first()
    if (court.status == COURT_IN_USE and court.current_match_id) or in_play is not None:
        occupant = in_play.id if in_play is not None else court.current_match_id
        raise HTTPException(
            status_code=409,
            detail=f"COURT_IN_USE: court {court.name} is occupied by match {occupant}",
        )

    # Every match still pointing at this court lets go of it; unstarted ones go back to waiting
    referencing = session.exec(select(Match).where(Match.court_id == court_id)).all()
    for match in referencing:
        match.court_id = None
        if match.status == MatchStatus.SCHEDULED:
            match.status = MatchStatus.PENDING_COURT
        session.add(match)
    try:
        session.flush()
        session.delete(court)
        session.commit()
    except Exception:
        session.rollback()
        raise
    return None


@router.post("/tournaments/{tournament_id}/courts/reassign", response_model=ReassignResponse)
def reassign(tournament_id: int, request: ReassignRequest, session: Session = Depends(get_session)):
    """Re-run court allocation over unstarted matches; started matches are never touched."""
    _require_tournament(session, tournament_id)
    try:
        return reassign_courts(session, tournament_id, request.category_id)
    except EngineError as e:
        raise http_error(e)


@router.post("/tournaments/{tournament_id}/courts/{court_id}/dispatch", response_model=DispatchResponse)
def dispatch(tournament_id: int, court_id: int, session: Session = Depends(get_session)):
    """Best-effort: give this court to the waiting match with the lowest match order."""
    court = session.get(Court, court_id)
    if not court or court.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail="Court not found")
    match = dispatch_court(session, court_id)
    if match is None:
        return DispatchResponse(dispatched=False)
    return DispatchResponse(dispatched=True, match=MatchResponse.model_validate(match))

"""
Bracket endpoints: generate, regenerate, match list, standings, qualifiers, stats.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlmodel import Session, select

from courtside.database import get_session
from courtside.models.category import Category, CategoryFormat
from courtside.models.match import Match
from courtside.routes.engine_errors import http_error
from courtside.services.draw_service import generate_bracket, regenerate_bracket
from courtside.services.errors import EngineError
from courtside.services.seeding import Participant
from courtside.services.standings import (
    calculate_group_standings,
    category_stats,
    resolve_knockout_qualifiers,
)

router = APIRouter()


class ParticipantIn(BaseModel):
    id: str
    name: str

    @field_validator("id", "name")
    @classmethod
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class GenerateRequest(BaseModel):
    participants: List[ParticipantIn]
    format: Optional[CategoryFormat] = None
    group_count: Optional[int] = None
    advance_per_group: Optional[int] = None
    knockout_size: Optional[int] = None
    enable_third_place: Optional[bool] = None

    def format_options(self) -> Dict[str, Any]:
        options = self.model_dump(exclude={"participants"}, exclude_none=True)
        if self.format is not None:
            options["format"] = self.format.value
        return options


class RegenerateRequest(BaseModel):
    participants: List[ParticipantIn]  # new seeding order


class MatchResponse(BaseModel):
    id: str
    tournament_id: int
    category_id: int
    stage: str
    round: float
    match_order: int
    group_label: Optional[str] = None
    round_label: Optional[str] = None
    player1_id: Optional[str] = None
    player1_name: Optional[str] = None
    player1_placeholder: Optional[str] = None
    player2_id: Optional[str] = None
    player2_name: Optional[str] = None
    player2_placeholder: Optional[str] = None
    winner_id: Optional[str] = None
    next_match_id: Optional[str] = None
    next_match_slot: Optional[str] = None
    loser_next_match_id: Optional[str] = None
    loser_next_match_slot: Optional[str] = None
    court_id: Optional[int] = None
    status: str
    score_json: Dict[str, Any]
    timeline_json: List[Dict[str, Any]]
    rule_config: Optional[Dict[str, Any]] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StandingRowResponse(BaseModel):
    participant_id: str
    name: str
    group_label: str
    played: int
    wins: int
    losses: int
    points: int
    points_for: int
    points_against: int
    point_difference: int


class CategoryStatsResponse(BaseModel):
    total: int
    pending_player: int
    pending_court: int
    scheduled: int
    in_progress: int
    completed: int


def _participants(rows: List[ParticipantIn]) -> List[Participant]:
    return [Participant(id=p.id, name=p.name) for p in rows]


def _require_category(session: Session, tournament_id: int, category_id: int) -> Category:
    category = session.get(Category, category_id)
    if not category or category.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.post(
    "/tournaments/{tournament_id}/categories/{category_id}/bracket",
    response_model=List[MatchResponse],
    status_code=201,
)
def generate_category_bracket(
    tournament_id: int,
    category_id: int,
    request: GenerateRequest,
    session: Session = Depends(get_session),
):
    """Seed, build, allocate courts and progress byes for one category."""
    try:
        return generate_bracket(
            session,
            tournament_id,
            category_id,
            _participants(request.participants),
            options=request.format_options(),
        )
    except EngineError as e:
        raise http_error(e)


@router.post(
    "/tournaments/{tournament_id}/categories/{category_id}/bracket/regenerate",
    response_model=List[MatchResponse],
)
def regenerate_category_bracket(
    tournament_id: int,
    category_id: int,
    request: RegenerateRequest,
    session: Session = Depends(get_session),
):
    """Rebuild an unplayed bracket using the supplied participant order as seeding."""
    try:
        return regenerate_bracket(session, tournament_id, category_id, _participants(request.participants))
    except EngineError as e:
        raise http_error(e)


@router.get(
    "/tournaments/{tournament_id}/categories/{category_id}/matches",
    response_model=List[MatchResponse],
)
def list_category_matches(tournament_id: int, category_id: int, session: Session = Depends(get_session)):
    _require_category(session, tournament_id, category_id)
    return session.exec(
        select(Match)
        .where(Match.category_id == category_id)
        .order_by(Match.stage, Match.round, Match.group_label, Match.match_order)
    ).all()


@router.get(
    "/tournaments/{tournament_id}/categories/{category_id}/standings",
    response_model=Dict[str, List[StandingRowResponse]],
)
def get_category_standings(tournament_id: int, category_id: int, session: Session = Depends(get_session)):
    _require_category(session, tournament_id, category_id)
    standings = calculate_group_standings(session, category_id)
    return {label: [row.to_dict() for row in rows] for label, rows in standings.items()}


@router.post("/tournaments/{tournament_id}/categories/{category_id}/qualifiers")
def resolve_category_qualifiers(tournament_id: int, category_id: int, session: Session = Depends(get_session)):
    """Fill knockout placeholders once group play is complete. Safe to call repeatedly."""
    _require_category(session, tournament_id, category_id)
    try:
        filled = resolve_knockout_qualifiers(session, category_id)
    except EngineError as e:
        raise http_error(e)
    return {"filled": filled}


@router.get(
    "/tournaments/{tournament_id}/categories/{category_id}/stats",
    response_model=CategoryStatsResponse,
)
def get_category_stats(tournament_id: int, category_id: int, session: Session = Depends(get_session)):
    _require_category(session, tournament_id, category_id)
    return category_stats(session, category_id)

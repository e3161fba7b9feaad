"""
Match State Machine: start, record score, undo.

PENDING_PLAYER -> PENDING_COURT -> SCHEDULED -> IN_PROGRESS -> COMPLETED.
Completion lives in completion.py; everything here is a single-match
read-then-write that commits on success and rolls back on failure.
"""
import logging
from datetime import datetime
from typing import Any, Dict

from sqlmodel import Session

from courtside.models.court import COURT_IN_USE, Court
from courtside.models.match import Match, MatchStatus
from courtside.services.errors import (
    CourtNotFoundError,
    InputValidationError,
    MatchNotFoundError,
    MatchStateError,
)

logger = logging.getLogger(__name__)

SIDES = ("player1", "player2")

ENTRY_START = "start"
ENTRY_SCORE = "score"
ENTRY_COMPLETE = "complete"
ENTRY_BYE = "bye"


def timeline_entry(kind: str, **data: Any) -> Dict[str, Any]:
    return {"type": kind, "at": datetime.utcnow().isoformat(), **data}


def get_match(session: Session, match_id: str) -> Match:
    match = session.get(Match, match_id)
    if match is None:
        raise MatchNotFoundError(f"match {match_id} not found")
    return match


def _require_in_progress(match: Match) -> None:
    if match.status != MatchStatus.IN_PROGRESS:
        raise MatchStateError(f"match {match.id} is {match.status}, expected {MatchStatus.IN_PROGRESS}")


def _commit(session: Session, *rows) -> None:
    try:
        for row in rows:
            session.add(row)
        session.commit()
    except Exception:
        session.rollback()
        raise
    for row in rows:
        session.refresh(row)


def start_match(session: Session, match_id: str) -> Match:
    """
    SCHEDULED -> IN_PROGRESS. Occupies the match's court.

    Raises:
        MatchNotFoundError: unknown match
        MatchStateError: not scheduled, a participant is missing, or the court
            is occupied by another match in progress
    """
    match = get_match(session, match_id)
    if match.status != MatchStatus.SCHEDULED:
        raise MatchStateError(f"match {match.id} is {match.status}, only SCHEDULED matches can start")
    if not (match.player1_name and match.player2_name):
        raise MatchStateError(f"match {match.id} cannot start without both participants")

    court = session.get(Court, match.court_id) if match.court_id is not None else None
    if court is None:
        raise CourtNotFoundError(f"court {match.court_id} for match {match.id} not found")
    if court.current_match_id and court.current_match_id != match.id:
        occupant = session.get(Match, court.current_match_id)
        if occupant is not None and occupant.status == MatchStatus.IN_PROGRESS:
            raise MatchStateError(f"court {court.name} is busy with match {occupant.id}")

    now = datetime.utcnow()
    match.status = MatchStatus.IN_PROGRESS
    match.started_at = now
    match.timeline_json = list(match.timeline_json or []) + [timeline_entry(ENTRY_START)]
    court.status = COURT_IN_USE
    court.current_match_id = match.id
    court.updated_at = now

    _commit(session, match, court)
    logger.info("Match %s started on court %s", match.id, court.name)
    return match


def record_score(session: Session, match_id: str, side: str, delta: int = 1) -> Match:
    """
    Add ``delta`` points to ``side`` and log the action. No state change.

    Raises:
        InputValidationError: unknown side, zero delta, or a running total below zero
        MatchStateError: match not in progress
    """
    if side not in SIDES:
        raise InputValidationError(f"side must be one of {SIDES}, got {side!r}")
    if not isinstance(delta, int) or delta == 0:
        raise InputValidationError("delta must be a non-zero integer")

    match = get_match(session, match_id)
    _require_in_progress(match)

    score = dict(match.score_json or {})
    total = int(score.get(side, 0)) + delta
    if total < 0:
        raise InputValidationError(f"{side} score cannot go below zero")
    score[side] = total

    match.score_json = score
    match.timeline_json = list(match.timeline_json or []) + [
        timeline_entry(ENTRY_SCORE, side=side, delta=delta)
    ]
    _commit(session, match)
    return match


def undo_last_action(session: Session, match_id: str) -> Match:
    """
    Pop the newest action log entry and reverse its score effect.

    Raises:
        MatchStateError: match not in progress, empty log, or newest entry is not a score
    """
    match = get_match(session, match_id)
    _require_in_progress(match)

    timeline = list(match.timeline_json or [])
    if not timeline:
        raise MatchStateError(f"match {match.id} has nothing to undo")
    last = timeline[-1]
    if last.get("type") != ENTRY_SCORE:
        raise MatchStateError(f"newest action on match {match.id} is {last.get('type')!r}, not a score")

    score = dict(match.score_json or {})
    score[last["side"]] = int(score.get(last["side"], 0)) - int(last["delta"])

    match.score_json = score
    match.timeline_json = timeline[:-1]
    _commit(session, match)
    return match

"""
Completion Transaction, bye auto-progression and court dispatch.

complete_match first flips the match to COMPLETED with a conditional UPDATE
guarded on IN_PROGRESS and checks its rowcount, so only one transaction can
finalize a match. That write holds the database write lock; the winner successor,
loser successor, court and best waiting match are read fresh after it, so two
feeders of one successor always see each other's slot. Then, in the same commit,
it releases the court, advances winner and loser, and hands the freed court to
the highest-priority waiting match.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import update
from sqlmodel import Session, select

from courtside.models.court import COURT_IDLE, COURT_IN_USE, Court
from courtside.models.match import STAGE_GROUP, Match, MatchStatus
from courtside.services.advancement import advance_into
from courtside.services.errors import (
    CourtNotFoundError,
    InputValidationError,
    MatchNotFoundError,
    MatchStateError,
    TieScoreError,
)
from courtside.services.match_runtime import ENTRY_BYE, ENTRY_COMPLETE, SIDES, timeline_entry
from courtside.services.standings import resolve_knockout_qualifiers

logger = logging.getLogger(__name__)


@dataclass
class CompletionResult:
    match: Match
    winner_id: str
    loser_id: Optional[str]
    advanced_to: List[str] = field(default_factory=list)  # successor match ids written
    dispatched_match_id: Optional[str] = None
    qualifiers_resolved: int = 0


def _priority(match: Match):
    return (match.match_order, match.round, match.id)


def _final_score(final_score: Dict[str, Any]) -> Dict[str, int]:
    try:
        score = {side: int(final_score[side]) for side in SIDES}
    except (KeyError, TypeError, ValueError) as e:
        raise InputValidationError(f"final score needs integer player1 and player2 totals: {e}") from e
    if any(v < 0 for v in score.values()):
        raise InputValidationError("final score totals cannot be negative")
    return score


def _next_waiting_match(session: Session, tournament_id: int, exclude_id: str = None) -> Optional[Match]:
    query = select(Match).where(
        Match.tournament_id == tournament_id,
        Match.status == MatchStatus.PENDING_COURT,
    )
    if exclude_id is not None:
        query = query.where(Match.id != exclude_id)
    query = query.order_by(Match.match_order, Match.round, Match.id).with_for_update()
    return session.exec(query.execution_options(populate_existing=True)).first()


def _occupy(court: Court, match: Match, now: datetime) -> None:
    match.court_id = court.id
    match.status = MatchStatus.SCHEDULED
    court.status = COURT_IN_USE
    court.current_match_id = match.id
    court.updated_at = now


def complete_match(session: Session, match_id: str, final_score: Dict[str, Any]) -> CompletionResult:
    """
    Finalize an in-progress match.

    Args:
        final_score: {"player1": int, "player2": int}; higher total wins

    Raises:
        MatchNotFoundError: unknown match
        InputValidationError: malformed final score
        TieScoreError: equal totals
        MatchStateError: match not in progress (including a second completion)
    """
    score = _final_score(final_score)

    # Fast rejections; the guarded UPDATE below is what actually decides
    match = session.get(Match, match_id, populate_existing=True)
    if match is None:
        raise MatchNotFoundError(f"match {match_id} not found")
    if match.status != MatchStatus.IN_PROGRESS:
        raise MatchStateError(f"match {match.id} is {match.status}, only IN_PROGRESS matches can complete")
    if score["player1"] == score["player2"]:
        raise TieScoreError(f"match {match.id} ended {score['player1']}-{score['player2']}; a winner is required")

    if score["player1"] > score["player2"]:
        winner = (match.player1_id, match.player1_name)
        loser = (match.player2_id, match.player2_name)
    else:
        winner = (match.player2_id, match.player2_name)
        loser = (match.player1_id, match.player1_name)

    now = datetime.utcnow()
    result = CompletionResult(match=match, winner_id=winner[0], loser_id=loser[0])
    try:
        # The conditional UPDATE takes the write lock; everything below is read after it
        finalized = session.execute(
            update(Match)
            .where(Match.id == match.id, Match.status == MatchStatus.IN_PROGRESS)
            .values(
                status=MatchStatus.COMPLETED,
                winner_id=winner[0],
                score_json=score,
                timeline_json=list(match.timeline_json or []) + [timeline_entry(ENTRY_COMPLETE, score=score)],
                completed_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if finalized.rowcount != 1:
            raise MatchStateError(f"match {match.id} was completed concurrently")

        successor = None
        if match.next_match_id:
            successor = session.get(Match, match.next_match_id, populate_existing=True, with_for_update=True)
        loser_successor = None
        if match.loser_next_match_id:
            loser_successor = session.get(
                Match, match.loser_next_match_id, populate_existing=True, with_for_update=True
            )
        court = None
        if match.court_id is not None:
            court = session.get(Court, match.court_id, populate_existing=True, with_for_update=True)
        waiting = _next_waiting_match(session, match.tournament_id, exclude_id=match.id) if court else None

        if court is not None and court.current_match_id in (None, match.id):
            court.status = COURT_IDLE
            court.current_match_id = None
            court.updated_at = now
            session.add(court)

        newly_waiting: List[Match] = []
        if successor is not None:
            if advance_into(successor, match.next_match_slot, *winner):
                newly_waiting.append(successor)
            session.add(successor)
            result.advanced_to.append(successor.id)
        if loser_successor is not None and loser[0] is not None:
            if advance_into(loser_successor, match.loser_next_match_slot, *loser):
                newly_waiting.append(loser_successor)
            session.add(loser_successor)
            result.advanced_to.append(loser_successor.id)

        if court is not None and court.status == COURT_IDLE:
            candidates = newly_waiting + ([waiting] if waiting is not None else [])
            if candidates:
                chosen = min(candidates, key=_priority)
                _occupy(court, chosen, now)
                session.add(chosen)
                session.add(court)
                result.dispatched_match_id = chosen.id

        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(match)
    logger.info(
        "Match %s completed %s-%s, winner %s%s",
        match.id, score["player1"], score["player2"], winner[0],
        f", court {court.name} dispatched to {result.dispatched_match_id}" if result.dispatched_match_id else "",
    )

    if match.stage == STAGE_GROUP:
        result.qualifiers_resolved = _resolve_qualifiers_after_group_match(session, match)
    return result


def _resolve_qualifiers_after_group_match(session: Session, match: Match) -> int:
    """Best-effort: the completion is already committed and stays committed."""
    try:
        return resolve_knockout_qualifiers(session, match.category_id)
    except Exception:
        logger.exception("Qualifier resolution failed after match %s", match.id)
        return 0


def progress_byes(session: Session, matches: Iterable[Match]) -> int:
    """
    Force-complete every bye match in ``matches`` and advance its sole participant.

    Runs inside the caller's transaction (no commit). Already completed matches are
    skipped, so repeated calls never complete a bye twice.
    """
    by_id = {m.id: m for m in matches}
    now = datetime.utcnow()
    completed = 0
    for match in sorted(by_id.values(), key=_priority):
        if not match.is_bye or match.status == MatchStatus.COMPLETED:
            continue

        if match.player1_id is not None:
            winner_id, winner_name = match.player1_id, match.player1_name
        else:
            winner_id, winner_name = match.player2_id, match.player2_name

        if match.court_id is not None:
            court = session.get(Court, match.court_id)
            if court is not None and court.current_match_id == match.id:
                court.status = COURT_IDLE
                court.current_match_id = None
                court.updated_at = now
                session.add(court)

        match.status = MatchStatus.COMPLETED
        match.winner_id = winner_id
        match.completed_at = now
        match.timeline_json = list(match.timeline_json or []) + [timeline_entry(ENTRY_BYE)]
        session.add(match)
        completed += 1

        if match.next_match_id:
            successor = by_id.get(match.next_match_id) or session.get(Match, match.next_match_id)
            if successor is not None:
                advance_into(successor, match.next_match_slot, winner_id, winner_name)
                session.add(successor)

    if completed:
        logger.debug("Bye auto-progression completed %s matches", completed)
    return completed


def dispatch_court(session: Session, court_id: int) -> Optional[Match]:
    """
    Hand an idle court to the waiting match with the lowest match_order.

    Best-effort: failures are logged and rolled back, never raised. Returns the
    dispatched match, or None when nothing was dispatched.
    """
    try:
        court = session.get(Court, court_id)
        if court is None:
            raise CourtNotFoundError(f"court {court_id} not found")
        if court.current_match_id is not None:
            occupant = session.get(Match, court.current_match_id)
            if occupant is not None and occupant.status != MatchStatus.COMPLETED:
                logger.warning("Court %s is occupied by match %s; nothing dispatched", court.name, occupant.id)
                return None

        waiting = _next_waiting_match(session, court.tournament_id)
        if waiting is None:
            logger.warning("No match waiting for court %s", court.name)
            return None

        _occupy(court, waiting, datetime.utcnow())
        session.add(waiting)
        session.add(court)
        session.commit()
        session.refresh(waiting)
    except Exception:
        session.rollback()
        logger.exception("Court dispatch failed for court %s", court_id)
        return None

    logger.info("Court %s dispatched to match %s", court.name, waiting.id)
    return waiting

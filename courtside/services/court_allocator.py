"""
Court Allocator: stage-aware court assignment for unstarted matches.

Rules:
- Group stage: one fixed court per group, courts handed to the sorted group
  labels in round-robin order.
- Knockout: final, third-place and semifinal rounds use the first court;
  quarterfinal and earlier rounds rotate through all courts by index within the round.

Bye matches never get a court; they are completed without being played.
"""
import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlmodel import Session, select

from courtside.models.court import COURT_IDLE, Court
from courtside.models.match import STAGE_GROUP, Match, MatchStatus
from courtside.services.errors import InputValidationError
from courtside.utils.round_labels import RoundLabel

logger = logging.getLogger(__name__)


def _is_allocatable(match: Match) -> bool:
    return match.status in MatchStatus.UNSTARTED and not match.is_bye


def plan_courts(matches: Sequence[Match], courts: Sequence[Court]) -> Dict[str, int]:
    """
    Compute match id -> court id for every allocatable match. Does not mutate.

    Courts must already be in allocation order (display order).
    """
    if not courts:
        return {}

    candidates = [m for m in matches if _is_allocatable(m)]
    plan: Dict[str, int] = {}

    groups: Dict[Tuple[int, str], List[Match]] = defaultdict(list)
    rounds: Dict[Tuple[int, float], List[Match]] = defaultdict(list)
    for match in candidates:
        if match.stage == STAGE_GROUP:
            groups[(match.category_id, match.group_label or "A")].append(match)
        else:
            rounds[(match.category_id, match.round)].append(match)

    for index, key in enumerate(sorted(groups)):
        court = courts[index % len(courts)]
        for match in groups[key]:
            plan[match.id] = court.id

    for key in sorted(rounds):
        round_matches = sorted(rounds[key], key=lambda m: m.match_order)
        for index, match in enumerate(round_matches):
            label = RoundLabel.parse(match.round_label)
            if label is not None and label.is_finals_tier:
                plan[match.id] = courts[0].id
            else:
                plan[match.id] = courts[index % len(courts)].id

    return plan


def apply_court(match: Match, court_id: Optional[int]) -> None:
    """Set the match's court and derive its readiness from the slots."""
    match.court_id = court_id
    if not match.has_both_players:
        match.status = MatchStatus.PENDING_PLAYER
    elif court_id is None:
        match.status = MatchStatus.PENDING_COURT
    else:
        match.status = MatchStatus.SCHEDULED


def allocate_courts(matches: Sequence[Match], courts: Sequence[Court]) -> int:
    """
    Assign courts to freshly built matches in place. Returns the number assigned.

    An empty court list is a no-op: matches stay courtless.
    """
    plan = plan_courts(matches, courts)
    for match in matches:
        if match.id in plan:
            apply_court(match, plan[match.id])
    return len(plan)


def tournament_courts(session: Session, tournament_id: int) -> List[Court]:
    """Courts of a tournament in allocation order."""
    return list(
        session.exec(
            select(Court)
            .where(Court.tournament_id == tournament_id)
            .order_by(Court.order, Court.id)
        ).all()
    )


def reassign_courts(
    session: Session,
    tournament_id: int,
    category_id: Optional[int] = None,
    courts: Optional[Sequence[Court]] = None,
) -> Dict[str, int]:
    """
    Re-run allocation over the unstarted matches of a tournament (or one category).

    In-progress and completed matches are never touched. A court is released when
    its occupant is gone, finished, or was moved to another court.

    Returns:
        {"succeeded": matches given a court, "skipped": every other match in scope}

    Raises:
        InputValidationError: no courts to allocate
    """
    if courts is None:
        courts = tournament_courts(session, tournament_id)
    if not courts:
        raise InputValidationError("no courts available to assign")

    query = select(Match).where(Match.tournament_id == tournament_id)
    if category_id is not None:
        query = query.where(Match.category_id == category_id)
    matches = list(session.exec(query.order_by(Match.round, Match.match_order, Match.id)).all())

    try:
        plan = plan_courts(matches, courts)
        for match in matches:
            if match.id in plan:
                apply_court(match, plan[match.id])
                session.add(match)

        for court in courts:
            if court.current_match_id is None:
                continue
            occupant = session.get(Match, court.current_match_id)
            if occupant is None or occupant.status == MatchStatus.COMPLETED or occupant.court_id != court.id:
                court.status = COURT_IDLE
                court.current_match_id = None
                court.updated_at = datetime.utcnow()
                session.add(court)

        session.commit()
    except Exception:
        session.rollback()
        raise

    result = {"succeeded": len(plan), "skipped": len(matches) - len(plan)}
    logger.info(
        "Reassigned courts for tournament %s (category %s): %s matches on %s courts, %s skipped",
        tournament_id, category_id if category_id is not None else "all",
        result["succeeded"], len(courts), result["skipped"],
    )
    return result

"""
Bracket generation and regeneration for one category.

Pipeline: Seeding -> Bracket Builder -> Court Allocator -> persist ->
bye auto-progression, all in a single commit.
"""
import logging
import random
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import delete, update
from sqlmodel import Session, func, select

from courtside.models.category import Category, CategoryFormat
from courtside.models.court import COURT_IDLE, Court
from courtside.models.match import Match, MatchStatus
from courtside.services.bracket_builder import (
    build_group_then_knockout,
    build_knockout,
    build_round_robin,
)
from courtside.services.completion import progress_byes
from courtside.services.court_allocator import allocate_courts, tournament_courts
from courtside.services.errors import (
    CategoryNotFoundError,
    InputValidationError,
    MatchStateError,
    RegenerationBlockedError,
)
from courtside.services.seeding import Participant, check_participants, ordered_slots, seed_slots
from courtside.utils.group_config import validate_group_config

logger = logging.getLogger(__name__)

# Category fields a generate request may override
FORMAT_OPTIONS = ("format", "group_count", "advance_per_group", "knockout_size", "enable_third_place")


def _get_category(session: Session, tournament_id: int, category_id: int) -> Category:
    category = session.get(Category, category_id)
    if category is None or category.tournament_id != tournament_id:
        raise CategoryNotFoundError(f"category {category_id} not found in tournament {tournament_id}")
    return category


def _apply_options(category: Category, options: Optional[Dict[str, Any]]) -> None:
    for key, value in (options or {}).items():
        if key not in FORMAT_OPTIONS:
            raise InputValidationError(f"unknown format option {key!r}")
        if value is not None:
            setattr(category, key, value)
    try:
        category.format = CategoryFormat(category.format).value
    except ValueError as e:
        raise InputValidationError(f"unknown category format {category.format!r}") from e


def build_category_matches(
    category: Category,
    participants: Sequence[Participant],
    shuffle: bool = True,
    rng: Optional[random.Random] = None,
) -> List[Match]:
    """
    Build (but do not persist) the full match set for a category.

    With ``shuffle`` the order is randomized; without it the given order is the seeding.
    """
    check_participants(participants)
    if shuffle:
        rng = rng or random.Random()

    tid, cid, rules = category.tournament_id, category.id, category.rule_config
    fmt = CategoryFormat(category.format)

    if fmt == CategoryFormat.knockout_only:
        slots = seed_slots(participants, rng) if shuffle else ordered_slots(participants)
        return build_knockout(tid, cid, slots, category.enable_third_place, rules)

    if fmt == CategoryFormat.round_robin:
        ordered = list(participants)
        if shuffle:
            rng.shuffle(ordered)
        return build_round_robin(tid, cid, ordered, rules)

    plan = validate_group_config(
        len(participants), category.group_count, category.advance_per_group, category.knockout_size
    )
    return build_group_then_knockout(
        tid, cid, participants, plan, category.enable_third_place, rules, rng if shuffle else None
    )


def _persist(session: Session, matches: List[Match], courts: Sequence[Court]) -> int:
    allocate_courts(matches, courts)
    # Later rounds first so every next_match_id already exists when its feeder is inserted
    session.add_all(sorted(matches, key=lambda m: -m.round))
    session.flush()
    return progress_byes(session, matches)


def _ordered(matches: List[Match]) -> List[Match]:
    return sorted(matches, key=lambda m: (m.stage != "group", m.round, m.group_label or "", m.match_order))


def generate_bracket(
    session: Session,
    tournament_id: int,
    category_id: int,
    participants: Sequence[Participant],
    courts: Optional[Sequence[Court]] = None,
    options: Optional[Dict[str, Any]] = None,
    rng: Optional[random.Random] = None,
) -> List[Match]:
    """
    Build and persist a complete bracket for one category.

    Args:
        participants: confirmed entrants
        courts: allocation order; defaults to the tournament's courts by display order
        options: overrides for the category's format configuration (saved on the category)
        rng: random source for seeding

    Raises:
        CategoryNotFoundError: unknown category
        InputValidationError: fewer than 2 participants, invalid group sizing, bad options
        MatchStateError: the category already has a bracket
    """
    category = _get_category(session, tournament_id, category_id)
    existing = session.exec(
        select(func.count()).select_from(Match).where(Match.category_id == category_id)
    ).one()
    if existing:
        raise MatchStateError(f"category {category.name} already has {existing} matches; regenerate instead")

    try:
        _apply_options(category, options)
        matches = build_category_matches(category, participants, shuffle=True, rng=rng)
        if courts is None:
            courts = tournament_courts(session, tournament_id)
        session.add(category)
        byes = _persist(session, matches, courts)
        session.commit()
    except Exception:
        session.rollback()
        raise

    if not courts:
        logger.warning("Category %s generated without courts; matches stay courtless", category_id)
    logger.info(
        "Generated %s bracket for category %s: %s matches, %s participants, %s byes, %s courts",
        category.format, category_id, len(matches), len(participants), byes, len(courts),
    )
    return _ordered(matches)


def has_started_matches(session: Session, category_id: int) -> int:
    """
    Count matches that block regeneration: in progress or completed.

    Completed bye matches were never played and do not count.
    """
    started = session.exec(
        select(Match).where(
            Match.category_id == category_id,
            Match.status.in_(MatchStatus.STARTED),
        )
    ).all()
    return sum(1 for m in started if not m.is_bye)


def regenerate_bracket(
    session: Session,
    tournament_id: int,
    category_id: int,
    participants: Sequence[Participant],
    courts: Optional[Sequence[Court]] = None,
) -> List[Match]:
    """
    Delete an unplayed bracket and rebuild it with ``participants`` in the given order.

    Raises:
        RegenerationBlockedError: a match has started; nothing is deleted
        InputValidationError: fewer than 2 participants or invalid group sizing
    """
    category = _get_category(session, tournament_id, category_id)
    blocking = has_started_matches(session, category_id)
    if blocking:
        logger.warning("Regeneration of category %s refused: %s started matches", category_id, blocking)
        raise RegenerationBlockedError(blocking)

    matches = build_category_matches(category, participants, shuffle=False)
    if courts is None:
        courts = tournament_courts(session, tournament_id)

    try:
        old_ids = select(Match.id).where(Match.category_id == category_id)
        occupied = session.exec(select(Court).where(Court.current_match_id.in_(old_ids))).all()
        for court in occupied:
            court.status = COURT_IDLE
            court.current_match_id = None
            session.add(court)

        # Edges point within the category; clear them so rows delete in any order
        session.execute(
            update(Match)
            .where(Match.category_id == category_id)
            .values(next_match_id=None, loser_next_match_id=None)
            .execution_options(synchronize_session=False)
        )
        removed = session.execute(
            delete(Match).where(Match.category_id == category_id).execution_options(synchronize_session=False)
        ).rowcount

        byes = _persist(session, matches, courts)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(
        "Regenerated category %s: removed %s matches, built %s (%s byes)",
        category_id, removed, len(matches), byes,
    )
    return _ordered(matches)

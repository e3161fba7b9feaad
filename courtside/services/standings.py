"""
Group standings and knockout qualifier resolution.

Standings rank by points (3 per win), then point difference, points scored, name.
Once every group match of a group-then-knockout category is completed, knockout
placeholders ("A1", "B2", "W1") are replaced by the entrants they stand for.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlmodel import Session, select

from courtside.models.category import Category, CategoryFormat
from courtside.models.match import SLOT_P1, SLOT_P2, STAGE_GROUP, STAGE_KNOCKOUT, Match, MatchStatus
from courtside.services.advancement import advance_into
from courtside.services.bracket_builder import WILDCARD_PREFIX
from courtside.services.errors import CategoryNotFoundError

logger = logging.getLogger(__name__)

POINTS_PER_WIN = 3


@dataclass
class StandingRow:
    participant_id: str
    name: str
    group_label: str
    played: int = 0
    wins: int = 0
    losses: int = 0
    points_for: int = 0
    points_against: int = 0

    @property
    def points(self) -> int:
        return self.wins * POINTS_PER_WIN

    @property
    def point_difference(self) -> int:
        return self.points_for - self.points_against

    def sort_key(self):
        return (-self.points, -self.point_difference, -self.points_for, self.name)

    def to_dict(self) -> Dict:
        return {
            "participant_id": self.participant_id,
            "name": self.name,
            "group_label": self.group_label,
            "played": self.played,
            "wins": self.wins,
            "losses": self.losses,
            "points": self.points,
            "points_for": self.points_for,
            "points_against": self.points_against,
            "point_difference": self.point_difference,
        }


def get_category(session: Session, category_id: int) -> Category:
    category = session.get(Category, category_id)
    if category is None:
        raise CategoryNotFoundError(f"category {category_id} not found")
    return category


def _group_matches(session: Session, category_id: int) -> List[Match]:
    return list(
        session.exec(
            select(Match)
            .where(Match.category_id == category_id, Match.stage == STAGE_GROUP)
            .order_by(Match.match_order)
        ).all()
    )


def calculate_group_standings(session: Session, category_id: int) -> Dict[str, List[StandingRow]]:
    """Ranked rows per group label. Entrants with no completed match still appear."""
    get_category(session, category_id)

    rows: Dict[str, Dict[str, StandingRow]] = defaultdict(dict)
    for match in _group_matches(session, category_id):
        label = match.group_label or "A"
        for pid, name in ((match.player1_id, match.player1_name), (match.player2_id, match.player2_name)):
            if pid is not None and pid not in rows[label]:
                rows[label][pid] = StandingRow(participant_id=pid, name=name or pid, group_label=label)

        if match.status != MatchStatus.COMPLETED or not match.has_both_players:
            continue
        score = match.score_json or {}
        sides = (
            (match.player1_id, int(score.get("player1", 0)), int(score.get("player2", 0))),
            (match.player2_id, int(score.get("player2", 0)), int(score.get("player1", 0))),
        )
        for pid, scored, conceded in sides:
            row = rows[label][pid]
            row.played += 1
            row.points_for += scored
            row.points_against += conceded
            if pid == match.winner_id:
                row.wins += 1
            else:
                row.losses += 1

    return {
        label: sorted(group_rows.values(), key=StandingRow.sort_key)
        for label, group_rows in sorted(rows.items())
    }


def _qualifier_map(
    standings: Dict[str, List[StandingRow]], advance_per_group: int
) -> Dict[str, StandingRow]:
    """Placeholder -> entrant, including wildcards ranked across groups at place advance + 1."""
    resolved: Dict[str, StandingRow] = {}
    for label, ranked in standings.items():
        for place, row in enumerate(ranked[:advance_per_group], start=1):
            resolved[f"{label}{place}"] = row

    next_placed = [ranked[advance_per_group] for ranked in standings.values() if len(ranked) > advance_per_group]
    for k, row in enumerate(sorted(next_placed, key=StandingRow.sort_key), start=1):
        resolved[f"{WILDCARD_PREFIX}{k}"] = row
    return resolved


def resolve_knockout_qualifiers(session: Session, category_id: int) -> int:
    """
    Fill knockout placeholders from final group standings.

    No-op until every group match is completed. Idempotent: slots already holding
    their qualifier are left alone.

    Returns:
        Number of knockout slots filled by this call.
    """
    category = get_category(session, category_id)
    if category.format != CategoryFormat.group_then_knockout:
        return 0

    group_matches = _group_matches(session, category_id)
    unfinished = sum(1 for m in group_matches if m.status != MatchStatus.COMPLETED)
    if not group_matches or unfinished:
        logger.debug("Category %s: %s group matches still open, qualifiers not resolved", category_id, unfinished)
        return 0

    qualifiers = _qualifier_map(
        calculate_group_standings(session, category_id), category.advance_per_group or 1
    )
    knockout_openers = session.exec(
        select(Match).where(
            Match.category_id == category_id,
            Match.stage == STAGE_KNOCKOUT,
            Match.round == 1,
        )
    ).all()

    filled = 0
    try:
        for match in knockout_openers:
            for slot, placeholder in ((SLOT_P1, match.player1_placeholder), (SLOT_P2, match.player2_placeholder)):
                if placeholder is None or match.slot_player(slot) is not None:
                    continue
                row: Optional[StandingRow] = qualifiers.get(placeholder)
                if row is None:
                    logger.warning("Category %s: no entrant for placeholder %s", category_id, placeholder)
                    continue
                advance_into(match, slot, row.participant_id, row.name)
                filled += 1
            session.add(match)
        session.commit()
    except Exception:
        session.rollback()
        raise

    if filled:
        logger.info("Category %s: resolved %s knockout qualifier slots", category_id, filled)
    return filled


def category_stats(session: Session, category_id: int) -> Dict[str, int]:
    get_category(session, category_id)
    matches = session.exec(select(Match).where(Match.category_id == category_id)).all()

    counts = defaultdict(int)
    for match in matches:
        counts[match.status] += 1
    return {
        "total": len(matches),
        "pending_player": counts[MatchStatus.PENDING_PLAYER],
        "pending_court": counts[MatchStatus.PENDING_COURT],
        "scheduled": counts[MatchStatus.SCHEDULED],
        "in_progress": counts[MatchStatus.IN_PROGRESS],
        "completed": counts[MatchStatus.COMPLETED],
    }

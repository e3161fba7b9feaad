"""
Court Allocator: pure allocation rules and session-backed reassignment.
"""
import random

import pytest

from courtside.models.court import COURT_IDLE, COURT_IN_USE, Court
from courtside.models.match import MatchStatus
from courtside.services.bracket_builder import build_knockout, build_round_robin
from courtside.services.completion import complete_match
from courtside.services.court_allocator import allocate_courts, plan_courts, reassign_courts
from courtside.services.draw_service import generate_bracket
from courtside.services.errors import InputValidationError
from courtside.services.match_runtime import start_match
from courtside.services.seeding import ordered_slots
from tests.conftest import category_matches, make_participants


def _courts(count):
    return [Court(id=i, tournament_id=1, name=f"Court {i}", order=i) for i in range(1, count + 1)]


def test_empty_court_list_is_a_no_op():
    matches = build_knockout(1, 1, ordered_slots(make_participants(8)))
    assert allocate_courts(matches, []) == 0
    assert all(m.court_id is None for m in matches)
    assert {m.status for m in matches if m.round == 1} == {MatchStatus.PENDING_COURT}


def test_knockout_rotation_and_main_court():
    matches = build_knockout(1, 1, ordered_slots(make_participants(16)))
    courts = _courts(3)
    allocate_courts(matches, courts)

    r16 = sorted((m for m in matches if m.round_label == "R16"), key=lambda m: m.match_order)
    assert [m.court_id for m in r16] == [1, 2, 3, 1, 2, 3, 1, 2]
    qf = sorted((m for m in matches if m.round_label == "QF"), key=lambda m: m.match_order)
    assert [m.court_id for m in qf] == [1, 2, 3, 1]
    for m in matches:
        if m.round_label in ("SF", "FI"):
            assert m.court_id == 1


def test_status_follows_slots():
    matches = build_knockout(1, 1, ordered_slots(make_participants(4)), enable_third_place=True)
    allocate_courts(matches, _courts(2))
    for m in matches:
        if m.has_both_players:
            assert m.status == MatchStatus.SCHEDULED
        else:
            assert m.status == MatchStatus.PENDING_PLAYER


def test_bye_matches_get_no_court():
    matches = build_knockout(1, 1, ordered_slots(make_participants(5)))
    allocate_courts(matches, _courts(2))
    byes = [m for m in matches if m.is_bye]
    assert len(byes) == 3
    assert all(m.court_id is None for m in byes)


def test_group_matches_share_a_fixed_court():
    pool_a = build_round_robin(1, 1, make_participants(4))
    pool_b = build_round_robin(1, 1, make_participants(4))
    for m in pool_b:
        m.group_label = "B"
    pool_c = build_round_robin(1, 1, make_participants(4))
    for m in pool_c:
        m.group_label = "C"

    plan = plan_courts(pool_c + pool_a + pool_b, _courts(2))
    assert {plan[m.id] for m in pool_a} == {1}
    assert {plan[m.id] for m in pool_b} == {2}
    assert {plan[m.id] for m in pool_c} == {1}


def test_started_matches_not_planned():
    matches = build_knockout(1, 1, ordered_slots(make_participants(4)))
    matches[0].status = MatchStatus.IN_PROGRESS
    matches[1].status = MatchStatus.COMPLETED
    plan = plan_courts(matches, _courts(2))
    assert matches[0].id not in plan
    assert matches[1].id not in plan


# ---------------------------------------------------------------------------
# reassign_courts
# ---------------------------------------------------------------------------


def test_reassign_requires_courts(session, tournament, make_category, rng):
    category = make_category()
    generate_bracket(session, tournament.id, category.id, make_participants(4), courts=[], rng=rng)
    with pytest.raises(InputValidationError):
        reassign_courts(session, tournament.id, category.id)


def test_reassign_assigns_waiting_matches(session, tournament, make_category, make_courts, rng):
    category = make_category()
    generate_bracket(session, tournament.id, category.id, make_participants(8), courts=[], rng=rng)
    courts = make_courts(2)

    result = reassign_courts(session, tournament.id, category.id)

    matches = category_matches(session, category.id)
    assert result == {"succeeded": 7, "skipped": 0}
    assert all(m.court_id is not None for m in matches)
    assert {m.court_id for m in matches if m.round_label == "QF"} == {courts[0].id, courts[1].id}
    assert all(m.status == MatchStatus.SCHEDULED for m in matches if m.round == 1)


def test_reassign_never_touches_started_matches(session, tournament, make_category, make_courts, rng):
    category = make_category()
    old_courts = make_courts(2)
    generate_bracket(session, tournament.id, category.id, make_participants(8), rng=rng)

    quarters = [m for m in category_matches(session, category.id) if m.round_label == "QF"]
    start_match(session, quarters[0].id)
    start_match(session, quarters[1].id)
    complete_match(session, quarters[1].id, {"player1": 21, "player2": 9})
    frozen = {
        m.id: (m.status, m.court_id, m.player1_id, m.player2_id, m.winner_id)
        for m in category_matches(session, category.id)
        if m.status in MatchStatus.STARTED
    }
    assert len(frozen) == 2

    extra = Court(tournament_id=tournament.id, name="Court 0", order=0)
    session.add(extra)
    session.commit()

    result = reassign_courts(session, tournament.id)

    after = {m.id: m for m in category_matches(session, category.id)}
    for match_id, state in frozen.items():
        m = after[match_id]
        assert (m.status, m.court_id, m.player1_id, m.player2_id, m.winner_id) == state
    assert result["skipped"] == 2
    assert result["succeeded"] == 5
    # The new first court now carries the finals tier
    final = next(m for m in after.values() if m.round_label == "FI")
    assert final.court_id == extra.id
    assert old_courts[0].id != extra.id


def test_reassign_keeps_in_progress_occupant(session, tournament, make_category, make_courts, rng):
    category = make_category()
    courts = make_courts(1)
    generate_bracket(session, tournament.id, category.id, make_participants(4), rng=rng)
    semi = next(m for m in category_matches(session, category.id) if m.round_label == "SF")
    start_match(session, semi.id)

    reassign_courts(session, tournament.id, category.id)

    court = session.get(Court, courts[0].id)
    assert court.status == COURT_IN_USE
    assert court.current_match_id == semi.id


def test_reassign_releases_stale_occupant(session, tournament, make_category, make_courts, rng):
    category = make_category()
    courts = make_courts(1)
    generate_bracket(session, tournament.id, category.id, make_participants(2), rng=rng)

    court = session.get(Court, courts[0].id)
    court.status = COURT_IN_USE
    court.current_match_id = "gone"
    session.add(court)
    session.commit()

    reassign_courts(session, tournament.id)
    session.refresh(court)
    assert court.status == COURT_IDLE
    assert court.current_match_id is None


def test_reassign_scoped_to_category(session, tournament, make_category, make_courts):
    singles = make_category(name="Singles")
    doubles = make_category(name="Doubles")
    generate_bracket(session, tournament.id, singles.id, make_participants(4), courts=[], rng=random.Random(1))
    generate_bracket(session, tournament.id, doubles.id, make_participants(4), courts=[], rng=random.Random(2))
    make_courts(1)

    reassign_courts(session, tournament.id, singles.id)

    assert all(m.court_id is not None for m in category_matches(session, singles.id))
    assert all(m.court_id is None for m in category_matches(session, doubles.id))

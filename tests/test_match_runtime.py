import pytest
from sqlmodel import select

from courtside.models.court import COURT_IN_USE, Court
from courtside.models.match import Match, MatchStatus
from courtside.services.draw_service import generate_bracket
from courtside.services.errors import InputValidationError, MatchNotFoundError, MatchStateError
from courtside.services.match_runtime import record_score, start_match, undo_last_action
from tests.conftest import category_matches, make_participants


@pytest.fixture
def scheduled_match(session, tournament, make_category, make_courts, rng) -> Match:
    category = make_category()
    make_courts(2)
    generate_bracket(session, tournament.id, category.id, make_participants(8), rng=rng)
    return next(m for m in category_matches(session, category.id) if m.status == MatchStatus.SCHEDULED)


def test_start_occupies_court(session, scheduled_match):
    match = start_match(session, scheduled_match.id)

    assert match.status == MatchStatus.IN_PROGRESS
    assert match.started_at is not None
    court = session.get(Court, match.court_id)
    assert court.status == COURT_IN_USE
    assert court.current_match_id == match.id


def test_start_requires_scheduled(session, tournament, make_category, rng):
    category = make_category()
    generate_bracket(session, tournament.id, category.id, make_participants(4), courts=[], rng=rng)
    waiting = category_matches(session, category.id)[0]
    assert waiting.status == MatchStatus.PENDING_COURT

    with pytest.raises(MatchStateError):
        start_match(session, waiting.id)


def test_start_twice_rejected(session, scheduled_match):
    start_match(session, scheduled_match.id)
    with pytest.raises(MatchStateError):
        start_match(session, scheduled_match.id)


def test_start_refused_while_court_busy(session, scheduled_match):
    other = session.exec(
        select(Match).where(
            Match.court_id == scheduled_match.court_id,
            Match.id != scheduled_match.id,
            Match.status == MatchStatus.SCHEDULED,
        )
    ).first()
    assert other is not None

    start_match(session, scheduled_match.id)
    with pytest.raises(MatchStateError):
        start_match(session, other.id)


def test_start_unknown_match(session):
    with pytest.raises(MatchNotFoundError):
        start_match(session, "missing")


def test_record_score_updates_total_and_log(session, scheduled_match):
    start_match(session, scheduled_match.id)
    record_score(session, scheduled_match.id, "player1", 1)
    record_score(session, scheduled_match.id, "player1", 2)
    match = record_score(session, scheduled_match.id, "player2", 1)

    assert match.score_json == {"player1": 3, "player2": 1}
    assert [e["type"] for e in match.timeline_json] == ["start", "score", "score", "score"]
    assert match.status == MatchStatus.IN_PROGRESS


def test_record_score_requires_in_progress(session, scheduled_match):
    with pytest.raises(MatchStateError):
        record_score(session, scheduled_match.id, "player1", 1)


@pytest.mark.parametrize("side,delta", [("player3", 1), ("player1", 0)])
def test_record_score_rejects_bad_input(session, scheduled_match, side, delta):
    start_match(session, scheduled_match.id)
    with pytest.raises(InputValidationError):
        record_score(session, scheduled_match.id, side, delta)


def test_score_cannot_go_negative(session, scheduled_match):
    start_match(session, scheduled_match.id)
    with pytest.raises(InputValidationError):
        record_score(session, scheduled_match.id, "player2", -1)


def test_undo_then_redo_restores_score(session, scheduled_match):
    start_match(session, scheduled_match.id)
    record_score(session, scheduled_match.id, "player1", 1)
    before = record_score(session, scheduled_match.id, "player2", 3)
    before_score = dict(before.score_json)
    before_len = len(before.timeline_json)

    undone = undo_last_action(session, scheduled_match.id)
    assert undone.score_json == {"player1": 1, "player2": 0}
    assert len(undone.timeline_json) == before_len - 1

    redone = record_score(session, scheduled_match.id, "player2", 3)
    assert redone.score_json == before_score


def test_undo_stops_at_non_scoring_entry(session, scheduled_match):
    start_match(session, scheduled_match.id)
    record_score(session, scheduled_match.id, "player1", 1)
    undo_last_action(session, scheduled_match.id)

    with pytest.raises(MatchStateError):
        undo_last_action(session, scheduled_match.id)


def test_undo_requires_in_progress(session, scheduled_match):
    with pytest.raises(MatchStateError):
        undo_last_action(session, scheduled_match.id)

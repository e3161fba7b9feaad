"""
Advancement: write a participant into a successor match slot and recompute readiness.

Shared by the completion transaction, bye auto-progression and qualifier resolution.
Callers own the transaction; nothing here commits.
"""
import logging
from typing import Optional

from courtside.models.match import SLOT_P1, SLOT_P2, Match, MatchStatus
from courtside.services.errors import MatchStateError

logger = logging.getLogger(__name__)


def refresh_readiness(match: Match) -> bool:
    """
    Move a PENDING_PLAYER match forward once both slots are filled.

    Goes to SCHEDULED when a court is already fixed, otherwise PENDING_COURT.
    Returns True when the match is now waiting for a court.
    """
    if match.status != MatchStatus.PENDING_PLAYER or not match.has_both_players:
        return False
    if match.court_id is not None:
        match.status = MatchStatus.SCHEDULED
        return False
    match.status = MatchStatus.PENDING_COURT
    return True


def advance_into(
    successor: Match,
    slot: str,
    participant_id: str,
    participant_name: Optional[str],
) -> bool:
    """
    Place a participant into ``slot`` of ``successor``.

    Idempotent: writing the same participant again is a no-op. Overwriting a slot
    already held by someone else is refused, as is writing into a started match.

    Returns:
        True if the successor became PENDING_COURT as a result.
    """
    if slot not in (SLOT_P1, SLOT_P2):
        raise MatchStateError(f"match {successor.id} has no slot {slot!r}")

    current = successor.slot_player(slot)
    if current == participant_id:
        return False
    if current is not None:
        raise MatchStateError(
            f"slot {slot} of match {successor.id} already holds {current}, cannot place {participant_id}"
        )
    if successor.status not in MatchStatus.UNSTARTED:
        raise MatchStateError(f"match {successor.id} is {successor.status}, slots are frozen")

    if slot == SLOT_P1:
        successor.player1_id = participant_id
        successor.player1_name = participant_name
    else:
        successor.player2_id = participant_id
        successor.player2_name = participant_name

    logger.debug("Advanced %s into %s of match %s", participant_id, slot, successor.id)
    return refresh_readiness(successor)

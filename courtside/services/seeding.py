"""
Bracket seeding.

Pads the participant list with byes up to the next power of two and orders the
slots. Round-1 pairs are consecutive slots: (0, 1), (2, 3), ...
"""
import math
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence

from courtside.services.errors import InputValidationError


@dataclass(frozen=True)
class Participant:
    id: str
    name: str


# A slot is a Participant or None for a bye
Slot = Optional[Participant]


def bracket_size(participant_count: int) -> int:
    """Smallest power of two >= participant_count."""
    if participant_count < 2:
        raise InputValidationError(f"at least 2 participants are required, got {participant_count}")
    return 2 ** math.ceil(math.log2(participant_count))


def check_participants(participants: Sequence[Participant]) -> None:
    if len(participants) < 2:
        raise InputValidationError(f"at least 2 participants are required, got {len(participants)}")
    ids = [p.id for p in participants]
    if len(set(ids)) != len(ids):
        raise InputValidationError("participant ids must be unique")


def _spread_byes(slots: List[Slot]) -> List[Slot]:
    """
    Swap byes out of bye-vs-bye pairs so every bye faces a real participant.

    Byes are always fewer than half the slots, so a pair of two real participants
    exists for every pair of two byes.
    """
    pairs = [(i, i + 1) for i in range(0, len(slots), 2)]
    double_byes = [p for p in pairs if slots[p[0]] is None and slots[p[1]] is None]
    full_pairs = [p for p in pairs if slots[p[0]] is not None and slots[p[1]] is not None]
    for (bye_a, _), (_, real_b) in zip(double_byes, full_pairs):
        slots[bye_a], slots[real_b] = slots[real_b], slots[bye_a]
    return slots


def seed_slots(participants: Sequence[Participant], rng: random.Random = None) -> List[Slot]:
    """
    Randomized seeding: participants plus byes, shuffled with Fisher-Yates.

    Args:
        participants: entrants, any order
        rng: random source (injectable for deterministic tests)

    Returns:
        Slot list of length bracket_size(n); None marks a bye.
    """
    check_participants(participants)
    rng = rng or random.Random()
    size = bracket_size(len(participants))
    slots: List[Slot] = list(participants) + [None] * (size - len(participants))

    for i in range(len(slots) - 1, 0, -1):
        j = rng.randint(0, i)
        slots[i], slots[j] = slots[j], slots[i]

    return _spread_byes(slots)


def ordered_slots(participants: Sequence[Participant]) -> List[Slot]:
    """
    Manual seeding: keep the given order, the first ``byes`` entrants each get a bye.

    Entrant k (k < byes) sits alone in pair k; the rest fill the remaining pairs in order.
    """
    check_participants(participants)
    size = bracket_size(len(participants))
    byes = size - len(participants)

    slots: List[Slot] = []
    for participant in participants[:byes]:
        slots.extend([participant, None])
    slots.extend(participants[byes:])
    return slots

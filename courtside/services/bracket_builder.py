"""
Bracket Builder: turns seeded slots into a linked match graph.

Pure functions. Matches are returned unsaved; their ids are minted here so
next_match_id / loser_next_match_id edges are wired before anything is persisted.

Knockout wiring is positional: matches at index i and i+1 of round r feed the
match at index i // 2 of round r + 1 (even index -> p1, odd index -> p2).
"""
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from courtside.models.match import (
    SLOT_P1,
    SLOT_P2,
    STAGE_GROUP,
    STAGE_KNOCKOUT,
    Match,
    MatchStatus,
)
from courtside.services.errors import InputValidationError
from courtside.services.seeding import Participant, Slot, check_participants
from courtside.utils.group_config import GROUP_LABELS, GroupPlan, is_power_of_two
from courtside.utils.round_labels import RoundLabel

ROUND_ROBIN_GROUP = "A"
WILDCARD_PREFIX = "W"

# Placeholder for an unresolved knockout slot, e.g. "A1" (group A winner) or "W2" (second wildcard)
Placeholder = str


@dataclass
class KnockoutTree:
    rounds: List[List[Match]]  # rounds[0] is round 1
    third_place: Optional[Match] = None

    @property
    def matches(self) -> List[Match]:
        result = [m for round_matches in self.rounds for m in round_matches]
        if self.third_place is not None:
            result.append(self.third_place)
        return result

    @property
    def final(self) -> Match:
        return self.rounds[-1][0]


def _new_match(
    tournament_id: int,
    category_id: int,
    stage: str,
    round_number: float,
    match_order: int,
    rule_config: Optional[Dict[str, Any]],
    **fields,
) -> Match:
    return Match(
        tournament_id=tournament_id,
        category_id=category_id,
        stage=stage,
        round=round_number,
        match_order=match_order,
        rule_config=dict(rule_config) if rule_config else None,
        **fields,
    )


def _fill_slot(match: Match, slot: str, participant: Optional[Participant]) -> None:
    if participant is None:
        return
    if slot == SLOT_P1:
        match.player1_id = participant.id
        match.player1_name = participant.name
    else:
        match.player2_id = participant.id
        match.player2_name = participant.name


def build_knockout_tree(
    tournament_id: int,
    category_id: int,
    size: int,
    enable_third_place: bool = False,
    rule_config: Optional[Dict[str, Any]] = None,
) -> KnockoutTree:
    """
    Empty single-elimination tree for ``size`` entrants (a power of two >= 2).

    Every match starts PENDING_PLAYER; callers fill round 1.
    """
    if size < 2 or not is_power_of_two(size):
        raise InputValidationError(f"knockout size must be a power of two >= 2, got {size}")

    total_rounds = size.bit_length() - 1
    rounds: List[List[Match]] = []
    for round_number in range(1, total_rounds + 1):
        label = RoundLabel.for_round(total_rounds, round_number)
        count = size >> round_number
        rounds.append([
            _new_match(
                tournament_id,
                category_id,
                STAGE_KNOCKOUT,
                round_number,
                index + 1,
                rule_config,
                round_label=label.code,
                status=MatchStatus.PENDING_PLAYER,
            )
            for index in range(count)
        ])

    for round_matches, next_round in zip(rounds, rounds[1:]):
        for index, match in enumerate(round_matches):
            match.next_match_id = next_round[index // 2].id
            match.next_match_slot = SLOT_P1 if index % 2 == 0 else SLOT_P2

    third_place = None
    if enable_third_place and total_rounds >= 2:
        third_place = _new_match(
            tournament_id,
            category_id,
            STAGE_KNOCKOUT,
            total_rounds - 0.5,
            1,
            rule_config,
            round_label=RoundLabel.third_place().code,
            status=MatchStatus.PENDING_PLAYER,
        )
        for index, semifinal in enumerate(rounds[-2]):
            semifinal.loser_next_match_id = third_place.id
            semifinal.loser_next_match_slot = SLOT_P1 if index == 0 else SLOT_P2

    return KnockoutTree(rounds=rounds, third_place=third_place)


def build_knockout(
    tournament_id: int,
    category_id: int,
    slots: Sequence[Slot],
    enable_third_place: bool = False,
    rule_config: Optional[Dict[str, Any]] = None,
) -> List[Match]:
    """
    Single-elimination bracket from seeded slots (see seeding.seed_slots).

    Consecutive slot pairs form round 1. A pair holding one participant is a bye
    match: created PENDING_COURT with its opponent slot empty, ready for bye
    auto-progression.
    """
    tree = build_knockout_tree(tournament_id, category_id, len(slots), enable_third_place, rule_config)
    for index, match in enumerate(tree.rounds[0]):
        first, second = slots[2 * index], slots[2 * index + 1]
        if first is None and second is None:
            raise InputValidationError("a round-1 pair cannot consist of two byes")
        _fill_slot(match, SLOT_P1, first)
        _fill_slot(match, SLOT_P2, second)
        match.status = MatchStatus.PENDING_COURT

    if tree.third_place is not None and any(m.is_bye for m in tree.rounds[-2]):
        # A bye semifinal never produces a loser, so the third-place match could not fill
        for semifinal in tree.rounds[-2]:
            semifinal.loser_next_match_id = None
            semifinal.loser_next_match_slot = None
        tree.third_place = None
    return tree.matches


# =============================================================================
# Round-robin pairings
# =============================================================================

def circle_pairings(entrant_count: int) -> List[Tuple[int, int, int]]:
    """
    Round-robin pairings by the circle method. Returns (round_index, idx_a, idx_b)
    with 0-based entrant indices; every pair appears exactly once.

    Odd counts get a phantom entrant whose pairings are skipped.
    """
    n = entrant_count + 1 if entrant_count % 2 == 1 else entrant_count
    phantom = entrant_count if entrant_count % 2 == 1 else -1
    positions = list(range(n))

    result: List[Tuple[int, int, int]] = []
    for round_index in range(1, n):
        for i in range(n // 2):
            a, b = positions[i], positions[n - 1 - i]
            if phantom in (a, b):
                continue
            result.append((round_index, min(a, b), max(a, b)))
        # Keep position 0 fixed, rotate the rest one step
        positions = [positions[0], positions[-1]] + positions[1:-1]
    return result


def build_pool(
    tournament_id: int,
    category_id: int,
    entrants: Sequence[Participant],
    group_label: str,
    first_order: int = 1,
    rule_config: Optional[Dict[str, Any]] = None,
) -> List[Match]:
    """All C(n, 2) pool matches for one group, match_order counting up from ``first_order``."""
    matches = []
    for offset, (_, a, b) in enumerate(circle_pairings(len(entrants))):
        match = _new_match(
            tournament_id,
            category_id,
            STAGE_GROUP,
            1,
            first_order + offset,
            rule_config,
            group_label=group_label,
            status=MatchStatus.PENDING_COURT,
        )
        _fill_slot(match, SLOT_P1, entrants[a])
        _fill_slot(match, SLOT_P2, entrants[b])
        matches.append(match)
    return matches


def build_round_robin(
    tournament_id: int,
    category_id: int,
    participants: Sequence[Participant],
    rule_config: Optional[Dict[str, Any]] = None,
) -> List[Match]:
    check_participants(participants)
    return build_pool(tournament_id, category_id, participants, ROUND_ROBIN_GROUP, 1, rule_config)


# =============================================================================
# Group stage then knockout
# =============================================================================

def assign_groups(
    participants: Sequence[Participant],
    plan: GroupPlan,
    rng: Optional[random.Random] = None,
) -> Dict[str, List[Participant]]:
    """
    Split entrants into groups using contiguous blocks of the (optionally shuffled) order.

    Without ``rng`` the given order is kept (manual seeding).
    """
    ordered = list(participants)
    if rng is not None:
        rng.shuffle(ordered)

    groups: Dict[str, List[Participant]] = {}
    start = 0
    for label, group_size in zip(GROUP_LABELS, plan.group_sizes):
        groups[label] = ordered[start:start + group_size]
        start += group_size
    return groups


def qualifier_placeholders(plan: GroupPlan) -> List[Placeholder]:
    """Qualifiers in seed order: every group winner, then every runner-up, ..., then wildcards."""
    seeds = [
        f"{label}{place}"
        for place in range(1, plan.advance_per_group + 1)
        for label in plan.group_labels
    ]
    seeds.extend(f"{WILDCARD_PREFIX}{k}" for k in range(1, plan.wildcards + 1))
    return seeds


def placeholder_group(placeholder: Placeholder) -> Optional[str]:
    """Group letter of a placeholder; None for wildcards."""
    if placeholder.startswith(WILDCARD_PREFIX):
        return None
    return placeholder[0]


def _bracket_positions(size: int) -> List[int]:
    """1-based seed numbers in bracket order, e.g. 8 -> [1, 8, 4, 5, 2, 7, 3, 6]."""
    order = [1]
    while len(order) < size:
        n = len(order) * 2
        order = [seed for s in order for seed in (s, n + 1 - s)]
    return order


def _same_group(a: Placeholder, b: Placeholder) -> bool:
    group = placeholder_group(a)
    return group is not None and group == placeholder_group(b)


def pair_qualifiers(seeds: Sequence[Placeholder]) -> List[Tuple[Placeholder, Placeholder]]:
    """
    Round-1 pairs: seed i meets seed K+1-i, laid out in bracket order so the top
    seeds can only meet late. Same-group pairs are broken up by swapping
    opponents with another pair where that leaves both pairs clean.
    """
    positions = _bracket_positions(len(seeds))
    pairs = [
        [seeds[positions[i] - 1], seeds[positions[i + 1] - 1]]
        for i in range(0, len(positions), 2)
    ]

    for i, pair in enumerate(pairs):
        if not _same_group(*pair):
            continue
        for j, other in enumerate(pairs):
            if j == i:
                continue
            if not _same_group(pair[0], other[1]) and not _same_group(other[0], pair[1]):
                pair[1], other[1] = other[1], pair[1]
                break

    return [(a, b) for a, b in pairs]


def build_qualifier_knockout(
    tournament_id: int,
    category_id: int,
    plan: GroupPlan,
    enable_third_place: bool = False,
    rule_config: Optional[Dict[str, Any]] = None,
) -> List[Match]:
    """Knockout whose round-1 slots hold qualifier placeholders until group play resolves them."""
    tree = build_knockout_tree(
        tournament_id, category_id, plan.knockout_size, enable_third_place, rule_config
    )
    pairs = pair_qualifiers(qualifier_placeholders(plan))
    for match, (first, second) in zip(tree.rounds[0], pairs):
        match.player1_placeholder = first
        match.player2_placeholder = second
    return tree.matches


def build_group_then_knockout(
    tournament_id: int,
    category_id: int,
    participants: Sequence[Participant],
    plan: GroupPlan,
    enable_third_place: bool = False,
    rule_config: Optional[Dict[str, Any]] = None,
    rng: Optional[random.Random] = None,
) -> List[Match]:
    check_participants(participants)
    groups = assign_groups(participants, plan, rng)

    matches: List[Match] = []
    for label, entrants in groups.items():
        matches.extend(
            build_pool(tournament_id, category_id, entrants, label, len(matches) + 1, rule_config)
        )
    matches.extend(
        build_qualifier_knockout(tournament_id, category_id, plan, enable_third_place, rule_config)
    )
    return matches

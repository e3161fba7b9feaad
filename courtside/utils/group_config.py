"""
Group-stage sizing rules for group-then-knockout categories.
"""
from dataclasses import dataclass
from typing import List

from courtside.services.errors import InputValidationError

GROUP_LABELS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
MIN_GROUP_SIZE = 3


@dataclass
class GroupPlan:
    group_sizes: List[int]
    advance_per_group: int
    knockout_size: int
    wildcards: int  # best next-placed entrants filling the knockout beyond group advancers

    @property
    def group_labels(self) -> List[str]:
        return list(GROUP_LABELS[: len(self.group_sizes)])


def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def distribute_group_sizes(participant_count: int, group_count: int) -> List[int]:
    """Split participants as evenly as possible; the first ``count % groups`` groups get one extra."""
    if group_count < 1:
        raise InputValidationError(f"group_count must be >= 1, got {group_count}")
    base = participant_count // group_count
    remainder = participant_count % group_count
    return [base + (1 if i < remainder else 0) for i in range(group_count)]


def validate_group_config(
    participant_count: int,
    group_count: int,
    advance_per_group: int,
    knockout_size: int = None,
) -> GroupPlan:
    """
    Validate group sizing and return the resulting plan.

    ``knockout_size`` defaults to groups x advance. Any knockout places beyond the
    group advancers become wildcards.

    Raises:
        InputValidationError: when the sizing constraints cannot be satisfied
    """
    if group_count is None or group_count < 2:
        raise InputValidationError("group-then-knockout requires at least 2 groups")
    if group_count > len(GROUP_LABELS):
        raise InputValidationError(f"at most {len(GROUP_LABELS)} groups are supported")
    if group_count > participant_count / 2:
        raise InputValidationError(f"{group_count} groups is too many for {participant_count} participants")

    sizes = distribute_group_sizes(participant_count, group_count)
    smallest = min(sizes)
    if smallest < MIN_GROUP_SIZE:
        raise InputValidationError(f"every group needs at least {MIN_GROUP_SIZE} participants, smallest has {smallest}")

    if advance_per_group is None or advance_per_group < 1:
        raise InputValidationError("advance_per_group must be >= 1")
    if advance_per_group >= smallest:
        raise InputValidationError(
            f"advance_per_group ({advance_per_group}) must be smaller than the smallest group ({smallest})"
        )

    advancers = group_count * advance_per_group
    if knockout_size is None:
        knockout_size = advancers
    if not is_power_of_two(knockout_size) or knockout_size < 2:
        raise InputValidationError(f"knockout_size ({knockout_size}) must be a power of two (2, 4, 8, 16...)")
    if knockout_size < advancers:
        raise InputValidationError(
            f"knockout_size ({knockout_size}) is smaller than the {advancers} group advancers"
        )

    wildcards = knockout_size - advancers
    if wildcards > group_count:
        raise InputValidationError(
            f"{wildcards} wildcard places exceed the {group_count} next-placed entrants available"
        )
    if advance_per_group + (1 if wildcards else 0) > smallest:
        raise InputValidationError("wildcards require every group to have a next-placed entrant")

    return GroupPlan(
        group_sizes=sizes,
        advance_per_group=advance_per_group,
        knockout_size=knockout_size,
        wildcards=wildcards,
    )

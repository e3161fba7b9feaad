import pytest

from courtside.services.errors import InputValidationError
from courtside.utils.group_config import distribute_group_sizes, is_power_of_two, validate_group_config


def test_distribute_even():
    assert distribute_group_sizes(12, 3) == [4, 4, 4]


def test_distribute_remainder_goes_to_first_groups():
    assert distribute_group_sizes(14, 4) == [4, 4, 3, 3]


def test_power_of_two():
    assert [n for n in range(0, 20) if is_power_of_two(n)] == [1, 2, 4, 8, 16]


def test_three_groups_of_four_into_eight():
    plan = validate_group_config(12, 3, 2, 8)
    assert plan.group_sizes == [4, 4, 4]
    assert plan.group_labels == ["A", "B", "C"]
    assert plan.knockout_size == 8
    assert plan.wildcards == 2


def test_knockout_size_defaults_to_advancers():
    plan = validate_group_config(16, 4, 2)
    assert plan.knockout_size == 8
    assert plan.wildcards == 0


@pytest.mark.parametrize(
    "participants,groups,advance,knockout",
    [
        (12, 1, 2, 4),  # fewer than 2 groups
        (8, 5, 1, 4),  # more than n/2 groups
        (10, 4, 1, 4),  # a group of 2
        (12, 3, 4, 8),  # advance not below smallest group
        (12, 3, 2, 6),  # not a power of two
        (12, 3, 2, 4),  # knockout smaller than advancers
        (16, 4, 1, 16),  # more wildcards than groups
        (12, 3, 0, 4),  # nobody advances
    ],
)
def test_invalid_group_configs_rejected(participants, groups, advance, knockout):
    with pytest.raises(InputValidationError):
        validate_group_config(participants, groups, advance, knockout)

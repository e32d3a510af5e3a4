import pytest

from felt.common.util import clamp, round_to_denomination


def test_clamp_inside_range():
    assert clamp(5, 1, 10) == 5


def test_clamp_below_and_above():
    assert clamp(-3, 1, 10) == 1
    assert clamp(30, 1, 10) == 10


def test_clamp_upper_wins_when_bounds_cross():
    assert clamp(50, 10, 5) == 5


@pytest.mark.parametrize(
    "value, expected",
    [
        (50, 50),
        (49, 25),
        (137, 100),
        (260, 200),
        (24, 20),
        (10, 10),
        (9, 0),
        (0, 0),
    ],
)
def test_round_to_denomination(value, expected):
    assert round_to_denomination(value, (10, 25, 50, 100)) == expected


def test_round_to_denomination_unsorted_input():
    assert round_to_denomination(60, [25, 100, 10, 50]) == 50


def test_round_to_denomination_requires_denominations():
    with pytest.raises(ValueError):
        round_to_denomination(50, [])

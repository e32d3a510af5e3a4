from typing import Sequence


def clamp(value: float, lower: float, upper: float) -> float:
    """
    Clamp `value` into ``[lower, upper]``.

    When the bounds cross, `upper` wins, so a cap below a floor still caps.
    """
    return min(max(value, lower), upper)


def round_to_denomination(value: int, denominations: Sequence[int]) -> int:
    """
    Round `value` down to a multiple of the largest denomination it covers.

    :param value: The amount to round
    :param denominations: Available chip denominations, in any order
    :return: The rounded amount, or 0 when `value` is below every denomination
    :raises ValueError: If no denominations are given
    """
    if not denominations:
        raise ValueError("At least one denomination is required.")
    for denomination in sorted(denominations, reverse=True):
        if value >= denomination:
            return (value // denomination) * denomination
    return 0

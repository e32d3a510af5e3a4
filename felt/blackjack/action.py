"""Defines the Action enum for the possible actions a player can take on a hand of blackjack."""
from enum import Enum


class Action(Enum):
    """Enum for the possible actions a player can take on the active hand."""

    HIT = "hit"
    STAND = "stand"
    DOUBLE = "double"
    SPLIT = "split"
    SURRENDER = "surrender"

    def __str__(self) -> str:
        return self.value

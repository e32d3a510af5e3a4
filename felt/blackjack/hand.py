"""
Hand evaluation for blackjack.

`score` is the single source of truth for a hand's total; `HandState`
calls it whenever a hand is built, so derived fields never drift from the
cards they describe.
"""

from typing import NamedTuple, Sequence

from felt.blackjack.constants import (
    ACE_HIGH_VALUE,
    ACE_VALUE_DIFFERENCE,
    BLACKJACK_SCORE,
)
from felt.common.card import Card, Rank


class Score(NamedTuple):
    """Total of a hand and whether an ace is still counted as 11."""

    total: int
    is_soft: bool


def score(cards: Sequence[Card]) -> Score:
    """
    Calculate the best total of a hand.

    Every ace starts at 11 and is downgraded to 1, one at a time, while the
    total is over 21.

    >>> from felt.common.card import Suit
    >>> score([Card(Suit.HEARTS, Rank.ACE), Card(Suit.CLUBS, Rank.KING)])
    Score(total=21, is_soft=True)
    >>> score([Card(Suit.HEARTS, Rank.ACE), Card(Suit.CLUBS, Rank.ACE)])
    Score(total=12, is_soft=True)
    """
    total = 0
    aces = 0
    for card in cards:
        if card.rank is Rank.ACE:
            aces += 1
            total += ACE_HIGH_VALUE
        else:
            total += card.value

    while total > BLACKJACK_SCORE and aces > 0:
        total -= ACE_VALUE_DIFFERENCE
        aces -= 1

    return Score(total, aces > 0 and total <= BLACKJACK_SCORE)


def is_pair(cards: Sequence[Card]) -> bool:
    """Check if the cards are exactly two of the same rank."""
    return len(cards) == 2 and cards[0].rank == cards[1].rank


def pair_value(cards: Sequence[Card]) -> int:
    """Value of a pair for split decisions (2-11, ace is 11), or 0 when not a pair."""
    if not is_pair(cards):
        return 0
    return cards[0].value


def format_score(hand) -> str:
    """Format a hand's score for display, including the soft indicator."""
    if not hand.cards:
        return "-"
    if hand.is_blackjack:
        return "Blackjack!"
    if hand.is_busted:
        return "Bust"
    if hand.is_soft:
        return f"Soft {hand.score}"
    return str(hand.score)

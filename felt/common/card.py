"""
This module defines the `Suit`, `Rank`, and `Card` classes, which are used to represent playing cards.

- `Suit`: An enum representing the four suits of a standard deck of playing
cards: Hearts, Diamonds, Clubs, and Spades.

- `Rank`: An enum representing the thirteen ranks of a standard deck of playing
cards: Ace, Two through Ten, Jack, Queen, and King.

- `Card`: An immutable playing card. A card has a suit, a rank, an identifier
that is unique within a shoe, and a face-up flag. Turning a card over
produces a new `Card`.

This module is part of the `felt` package, a blackjack round engine.
"""

from dataclasses import dataclass, replace
from enum import Enum, unique

from felt.blackjack.constants import get_blackjack_value


@unique
class Suit(Enum):
    """
    Enum for suits in a card deck.
    """

    HEARTS = "♥"
    DIAMONDS = "♦"
    CLUBS = "♣"
    SPADES = "♠"

    def __str__(self) -> str:
        return self.value


@unique
class Rank(Enum):
    """
    Enum for ranks in a card deck.

    Values are the position of the rank in a suit (ace low); use
    `rank_value` for the blackjack base value.
    """

    ACE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13

    @property
    def rank_value(self) -> int:
        """The blackjack base value of the rank (ace counts 11)."""
        return get_blackjack_value(self)

    @property
    def rank_str(self) -> str:
        """A short string representation of the rank."""
        if self in (Rank.ACE, Rank.JACK, Rank.QUEEN, Rank.KING):
            return self.name[0]
        return str(self.value)

    def __str__(self) -> str:
        return self.rank_str


@dataclass(frozen=True)
class Card:
    """
    An immutable playing card.

    >>> card = Card(Suit.HEARTS, Rank.TWO)
    >>> print(card)
    2 of ♥
    >>> card.value
    2

    Equality and hashing use suit and rank only, so two cards from different
    decks of the same shoe compare equal while keeping distinct ids.
    """

    suit: Suit
    rank: Rank
    id: str = ""
    face_up: bool = False

    def __post_init__(self):
        if not isinstance(self.suit, Suit):
            raise TypeError(f"Invalid suit: {self.suit}")
        if not isinstance(self.rank, Rank):
            raise TypeError(f"Invalid rank: {self.rank}")
        if not self.id:
            object.__setattr__(self, "id", card_id(self.rank, self.suit))

    @property
    def value(self) -> int:
        """Base blackjack value: 2-10 face value, 10 for J/Q/K, 11 for an ace."""
        return self.rank.rank_value

    @property
    def is_ace(self) -> bool:
        return self.rank is Rank.ACE

    def turned(self, face_up: bool = True) -> "Card":
        """Return a copy of this card with the given visibility."""
        if self.face_up == face_up:
            return self
        return replace(self, face_up=face_up)

    def __eq__(self, other):
        if isinstance(other, Card):
            return self.rank == other.rank and self.suit == other.suit
        return NotImplemented

    def __hash__(self):
        return hash((self.suit, self.rank))

    def __repr__(self) -> str:
        return f"Card(Suit.{self.suit.name}, Rank.{self.rank.name})"

    def __str__(self) -> str:
        return f"{self.rank.rank_str} of {self.suit}"


def card_id(rank: Rank, suit: Suit, deck_index: int = 0) -> str:
    """
    Build the identifier of a card.

    :param rank: Rank of the card
    :param suit: Suit of the card
    :param deck_index: Index of the deck the card belongs to in a multi-deck shoe
    :return: An identifier unique within a shoe, e.g. ``"ace-spades-0"``
    """
    return f"{rank.name.lower()}-{suit.name.lower()}-{deck_index}"

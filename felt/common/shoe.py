"""
Shoe management for blackjack.

A shoe is an ordered tuple of the cards remaining to be dealt. The top of the
shoe is the end of the tuple, so dealing pops from the end. Every function
here is pure: it never mutates the shoe it is given and returns the remaining
shoe alongside the dealt cards.

>>> shoe = build_shoe(1)
>>> len(shoe)
52
>>> card, shoe = deal(shoe)
>>> len(shoe)
51
"""

import random
from typing import Optional, Sequence, Tuple

from felt.blackjack.constants import (
    CARDS_PER_DECK,
    MAX_DECKS,
    MIN_DECKS,
    RESHUFFLE_THRESHOLD,
)
from felt.blackjack.errors import EmptyShoe, InsufficientCards, InvalidConfiguration
from felt.common.card import Card, Rank, Suit, card_id

SUITS = (Suit.HEARTS, Suit.DIAMONDS, Suit.CLUBS, Suit.SPADES)
RANKS = tuple(Rank)

Shoe = Tuple[Card, ...]


def build_deck(deck_index: int = 0) -> Shoe:
    """
    Construct a standard 52-card deck in suit-major order.

    :param deck_index: Index of the deck, used to keep card ids unique in a shoe
    :return: A tuple of 52 face-down cards
    """
    return tuple(
        Card(suit, rank, id=card_id(rank, suit, deck_index))
        for suit in SUITS
        for rank in RANKS
    )


def build_shoe(deck_count: int) -> Shoe:
    """
    Combine `deck_count` decks into one unshuffled shoe.

    :param deck_count: Number of decks, between 1 and 8
    :return: A tuple of ``52 * deck_count`` cards with unique ids
    :raises InvalidConfiguration: If the deck count is out of range
    """
    if (
        isinstance(deck_count, bool)
        or not isinstance(deck_count, int)
        or not MIN_DECKS <= deck_count <= MAX_DECKS
    ):
        raise InvalidConfiguration(
            f"Invalid deck count: {deck_count}. "
            f"Must be between {MIN_DECKS} and {MAX_DECKS}."
        )
    cards = []
    for deck_index in range(deck_count):
        cards.extend(build_deck(deck_index))
    return tuple(cards)


def shuffle(cards: Sequence[Card], rng: Optional[random.Random] = None) -> Shoe:
    """
    Return a uniformly shuffled copy of `cards` (Fisher-Yates).

    :param cards: Cards to shuffle; left untouched
    :param rng: Random source, defaults to the module-level generator
    :return: A new tuple holding a permutation of the input
    """
    rng = rng or random
    shuffled = list(cards)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return tuple(shuffled)


def new_shoe(deck_count: int, rng: Optional[random.Random] = None) -> Shoe:
    """Build and shuffle a full shoe."""
    return shuffle(build_shoe(deck_count), rng)


def deal(shoe: Sequence[Card]) -> Tuple[Card, Shoe]:
    """
    Deal the top card of the shoe.

    :return: The dealt card and the remaining shoe
    :raises EmptyShoe: If no cards remain
    """
    if not shoe:
        raise EmptyShoe("Cannot deal from an empty shoe")
    remaining = tuple(shoe)
    return remaining[-1], remaining[:-1]


def deal_many(shoe: Sequence[Card], count: int) -> Tuple[Tuple[Card, ...], Shoe]:
    """
    Deal `count` cards from the top of the shoe, in dealing order.

    :return: The dealt cards and the remaining shoe
    :raises InsufficientCards: If fewer than `count` cards remain
    """
    if count < 0:
        raise ValueError("Card count must be non-negative")
    if count > len(shoe):
        raise InsufficientCards(
            f"Cannot deal {count} cards from a shoe with {len(shoe)} cards"
        )
    remaining = tuple(shoe)
    if count == 0:
        return (), remaining
    dealt = tuple(reversed(remaining[-count:]))
    return dealt, remaining[:-count]


def full_size(deck_count: int) -> int:
    """Number of cards in a full shoe of `deck_count` decks."""
    return deck_count * CARDS_PER_DECK


def needs_reshuffle(shoe: Sequence[Card], deck_count: int) -> bool:
    """
    Whether the remaining shoe has fallen below the penetration threshold.

    >>> needs_reshuffle(build_shoe(1)[:12], 1)
    True
    >>> needs_reshuffle(build_shoe(1)[:13], 1)
    False
    """
    return len(shoe) < full_size(deck_count) * RESHUFFLE_THRESHOLD


def penetration(shoe: Sequence[Card], deck_count: int) -> float:
    """Fraction of the shoe already dealt."""
    return 1 - len(shoe) / full_size(deck_count)

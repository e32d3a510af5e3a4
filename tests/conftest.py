"""
Pytest configuration for the felt test suite.

Shared fixtures build cards, stacked shoes and tables that are ready to be
dealt, so round tests can script exactly which cards come out of the shoe.
"""

import random
from dataclasses import replace

import pytest

from felt.blackjack.decision_logger import decision_logger
from felt.common.card import Card, Rank, Suit
from felt.events import EventBus
from felt.state import GameState, StateTransitionEngine

HUMAN = "player-1"


@pytest.fixture(autouse=True)
def reset_event_bus():
    """Give every test a fresh global event bus."""
    EventBus.reset()
    yield
    EventBus.reset()


@pytest.fixture(autouse=True)
def clear_decision_history():
    decision_logger.clear()
    yield
    decision_logger.clear()


def make_card(rank: Rank, suit: Suit = Suit.SPADES, face_up: bool = True) -> Card:
    return Card(suit, rank, face_up=face_up)


def stack_shoe(ranks, filler: Rank = Rank.TWO, filler_count: int = 40):
    """
    Build a shoe that deals `ranks` in order, followed by `filler` cards.

    The top of the shoe is the end of the tuple, so the dealing order is
    reversed into the tuple.
    """
    order = list(ranks) + [filler] * filler_count
    cards = [
        Card(Suit.SPADES, rank, id=f"stack-{i}") for i, rank in enumerate(order)
    ]
    return tuple(reversed(cards))


@pytest.fixture
def card():
    return make_card


@pytest.fixture
def stacked_shoe():
    return stack_shoe


@pytest.fixture
def betting_table():
    """Factory for a freshly initialised table in the betting phase."""

    def build(settings=None, **limits) -> GameState:
        state = GameState()
        if settings is not None:
            state = replace(state, settings=settings)
        if limits:
            state = replace(state, limits=replace(state.limits, **limits))
        return StateTransitionEngine.init_game(state, random.Random(7))

    return build


@pytest.fixture
def dealing_table(betting_table):
    """
    Factory for a table in the dealing phase with a scripted shoe.

    By default the AI seats have no chips and sit the round out, so the
    human's cards are the 1st and 3rd dealt and the dealer's are the 2nd
    (upcard) and 4th (hole card).
    """

    def build(
        ranks,
        bet: int = 100,
        with_ai: bool = False,
        settings=None,
        filler: Rank = Rank.TWO,
        human_chips=None,
    ) -> GameState:
        state = betting_table(settings)
        players = []
        for player in state.players:
            if player.is_ai and not with_ai:
                player = replace(player, chips=0)
            if player.is_human and human_chips is not None:
                player = replace(player, chips=human_chips)
            players.append(player)
        state = replace(
            state, players=tuple(players), shoe=stack_shoe(ranks, filler)
        )
        state = StateTransitionEngine.place_bet(state, HUMAN, bet)
        return StateTransitionEngine.start_dealing(state)

    return build

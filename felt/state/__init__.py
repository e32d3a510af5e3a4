"""
Table state for the felt engine.

A round is a sequence of frozen snapshots: `GameState` holds the shoe, the
dealer and every seat, and `StateTransitionEngine` turns one snapshot into
the next without touching the old one.
"""

from felt.state.models import (
    DealerState,
    GamePhase,
    GameState,
    HandState,
    PlayerState,
    PlayerType,
)
from felt.state.transitions import StateTransitionEngine

__all__ = [
    "DealerState",
    "GamePhase",
    "GameState",
    "HandState",
    "PlayerState",
    "PlayerType",
    "StateTransitionEngine",
]

"""
Exceptions raised by the blackjack engine.

Expected, recoverable errors are raised for requests the current round
cannot honour:

    - `IllegalAction`: the action is not in the legal set for the hand, phase or settings.
    - `InvalidBet`: the bet is outside the table limits or exceeds the player's chips.
    - `InvalidPhaseTransition`: the command was issued in the wrong phase.
    - `InvalidConfiguration`: a setting such as the deck count is out of range.

`EngineInvariantError` and its subclasses signal a bug in the engine itself,
such as dealing from an exhausted shoe.
"""

from typing import Iterable, Optional


class BlackjackError(Exception):
    """Base class for all engine errors."""

    pass


class InvalidConfiguration(BlackjackError, ValueError):
    """Raised when settings or table limits are invalid."""

    pass


class IllegalAction(BlackjackError):
    """Raised when a player attempts an action that is not currently legal."""

    pass


class InvalidBet(BlackjackError):
    """Raised when a bet is outside the table limits or exceeds available chips."""

    pass


class InvalidPhaseTransition(BlackjackError):
    """Raised when a command is issued while the round is in another phase."""

    def __init__(
        self, command: str, phase, expected: Optional[Iterable] = None
    ) -> None:
        self.command = command
        self.phase = phase
        self.expected = tuple(expected or ())
        message = f"Cannot {command} during the {phase} phase"
        if self.expected:
            allowed = ", ".join(str(p) for p in self.expected)
            message += f" (allowed: {allowed})"
        super().__init__(message)


class EngineInvariantError(BlackjackError):
    """Raised when the engine reaches a state that should be impossible."""

    pass


class EmptyShoe(EngineInvariantError):
    """Raised when dealing from an empty shoe."""

    pass


class InsufficientCards(EngineInvariantError):
    """Raised when more cards are requested than the shoe holds."""

    pass

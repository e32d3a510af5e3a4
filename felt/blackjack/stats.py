"""
This module contains the SessionStats class which is responsible for
tracking the human player's results across the rounds of a session.
"""

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict

from felt.blackjack.constants import STARTING_CHIPS
from felt.blackjack.errors import InvalidConfiguration
from felt.blackjack.rules import RoundResult


@dataclass(frozen=True)
class SessionStats:
    """
    Aggregate counters for a session. Reset only by starting over.
    """

    hands_played: int = 0
    hands_won: int = 0
    hands_lost: int = 0
    hands_pushed: int = 0
    blackjacks: int = 0
    total_won: int = 0
    total_lost: int = 0
    highest_chips: int = STARTING_CHIPS

    def record_hand(self, result: RoundResult, payout: int) -> "SessionStats":
        """Return stats updated with one resolved hand and its net payout."""
        won = self.hands_won
        lost = self.hands_lost
        pushed = self.hands_pushed
        blackjacks = self.blackjacks

        if result is RoundResult.WIN:
            won += 1
        elif result is RoundResult.BLACKJACK:
            won += 1
            blackjacks += 1
        elif result is RoundResult.LOSE:
            lost += 1
        elif result is RoundResult.PUSH:
            pushed += 1

        return replace(
            self,
            hands_played=self.hands_played + 1,
            hands_won=won,
            hands_lost=lost,
            hands_pushed=pushed,
            blackjacks=blackjacks,
            total_won=self.total_won + max(payout, 0),
            total_lost=self.total_lost + max(-payout, 0),
        )

    def record_chips(self, chips: int) -> "SessionStats":
        """Raise the high-water mark if `chips` exceeds it."""
        if chips <= self.highest_chips:
            return self
        return replace(self, highest_chips=chips)

    @property
    def net(self) -> int:
        return self.total_won - self.total_lost

    def report(self) -> Dict[str, Any]:
        """
        Returns a dictionary containing the current statistics.
        """
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionStats":
        """Build stats from a dictionary, ignoring unknown keys."""
        if not isinstance(data, dict):
            raise InvalidConfiguration("Stats must be a mapping")
        values = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidConfiguration(
                    f"Stat '{f.name}' must be a non-negative integer"
                )
            values[f.name] = value
        return cls(**values)

"""
Basic strategy for the computer-controlled seats.

Decisions come from three fixed tables stored as integer-indexed arrays
instead of nested dict lookups:

    HARD_TABLE[total - 4][upcard - 2]   hard totals 4-21
    SOFT_TABLE[total - 13][upcard - 2]  soft totals 13-21
    PAIR_TABLE[pair - 2][upcard - 2]    pair values 2-11 (ace is 11), True = split

Upcards run 2-11 with the ace as 11. The tables hold standard multi-deck
basic strategy.
"""

from enum import Enum
from math import floor
from typing import TYPE_CHECKING, Optional, Sequence

from felt.blackjack.action import Action
from felt.blackjack.constants import (
    ACE_HIGH_VALUE,
    AI_BET_PERCENTAGE,
    CHIP_DENOMINATIONS,
)
from felt.blackjack.decision_logger import decision_logger
from felt.blackjack.hand import is_pair, pair_value
from felt.common.util import clamp, round_to_denomination

if TYPE_CHECKING:
    from felt.state.models import HandState


class StrategyCode(Enum):
    """Table entries: Hit, Stand, Double (else hit), sPlit, suRrender (else hit)."""

    HIT = "H"
    STAND = "S"
    DOUBLE = "D"
    SPLIT = "P"
    SURRENDER = "R"


H = StrategyCode.HIT
S = StrategyCode.STAND
D = StrategyCode.DOUBLE
R = StrategyCode.SURRENDER
Y = True
N = False

HARD_FIRST_ROW = 4
SOFT_FIRST_ROW = 13
PAIR_FIRST_ROW = 2
UPCARD_FIRST_COLUMN = 2

# Dealer upcard:  2  3  4  5  6  7  8  9  10 A
HARD_TABLE = [
    [H, H, H, H, H, H, H, H, H, H],  # 4
    [H, H, H, H, H, H, H, H, H, H],  # 5
    [H, H, H, H, H, H, H, H, H, H],  # 6
    [H, H, H, H, H, H, H, H, H, H],  # 7
    [H, H, H, H, H, H, H, H, H, H],  # 8
    [H, D, D, D, D, H, H, H, H, H],  # 9
    [D, D, D, D, D, D, D, D, H, H],  # 10
    [D, D, D, D, D, D, D, D, D, D],  # 11
    [H, H, S, S, S, H, H, H, H, H],  # 12
    [S, S, S, S, S, H, H, H, H, H],  # 13
    [S, S, S, S, S, H, H, H, H, H],  # 14
    [S, S, S, S, S, H, H, H, R, R],  # 15
    [S, S, S, S, S, H, H, R, R, R],  # 16
    [S, S, S, S, S, S, S, S, S, S],  # 17
    [S, S, S, S, S, S, S, S, S, S],  # 18
    [S, S, S, S, S, S, S, S, S, S],  # 19
    [S, S, S, S, S, S, S, S, S, S],  # 20
    [S, S, S, S, S, S, S, S, S, S],  # 21
]

SOFT_TABLE = [
    [H, H, H, D, D, H, H, H, H, H],  # 13 (A,2)
    [H, H, H, D, D, H, H, H, H, H],  # 14 (A,3)
    [H, H, D, D, D, H, H, H, H, H],  # 15 (A,4)
    [H, H, D, D, D, H, H, H, H, H],  # 16 (A,5)
    [H, D, D, D, D, H, H, H, H, H],  # 17 (A,6)
    [D, D, D, D, D, S, S, H, H, H],  # 18 (A,7)
    [S, S, S, S, D, S, S, S, S, S],  # 19 (A,8)
    [S, S, S, S, S, S, S, S, S, S],  # 20 (A,9)
    [S, S, S, S, S, S, S, S, S, S],  # 21 (A,10)
]

PAIR_TABLE = [
    [Y, Y, Y, Y, Y, Y, N, N, N, N],  # 2,2
    [Y, Y, Y, Y, Y, Y, N, N, N, N],  # 3,3
    [N, N, N, Y, Y, N, N, N, N, N],  # 4,4
    [N, N, N, N, N, N, N, N, N, N],  # 5,5
    [Y, Y, Y, Y, Y, N, N, N, N, N],  # 6,6
    [Y, Y, Y, Y, Y, Y, N, N, N, N],  # 7,7
    [Y, Y, Y, Y, Y, Y, Y, Y, Y, Y],  # 8,8
    [Y, Y, Y, Y, Y, N, Y, Y, N, N],  # 9,9
    [N, N, N, N, N, N, N, N, N, N],  # 10,10
    [Y, Y, Y, Y, Y, Y, Y, Y, Y, Y],  # A,A
]


def normalize_upcard(value: int) -> int:
    """Map a dealer upcard value to a table column key: ace is 11, others clamp to 2-10."""
    if value in (1, ACE_HIGH_VALUE):
        return ACE_HIGH_VALUE
    return int(clamp(value, 2, 10))


class BasicStrategy:
    """
    Table-driven basic strategy.

    The only thing that varies between decisions is which of the three
    tables is consulted; everything else is a fixed translation from table
    code to a concrete, legal action.
    """

    def strategy_code(self, hand: "HandState", dealer_upcard_value: int) -> StrategyCode:
        """
        Raw table code for a hand, ignoring which actions are legal.

        Pairs the pair table says to split come back as SPLIT.
        """
        upcard = normalize_upcard(dealer_upcard_value)
        if self._pair_says_split(hand, upcard):
            return StrategyCode.SPLIT
        return self._lookup(hand, upcard)

    def decide_action(
        self,
        hand: "HandState",
        dealer_upcard_value: Optional[int],
        can_double: bool,
        can_split: bool,
        can_surrender: bool,
        player_name: str = "AI",
    ) -> Action:
        """
        Decide the action for a hand against the dealer's upcard.

        Args:
            hand: The hand being played
            dealer_upcard_value: Value of the dealer's visible card (ace as 1 or 11)
            can_double: Whether doubling is currently legal
            can_split: Whether splitting is currently legal
            can_surrender: Whether surrendering is currently legal
            player_name: Used for decision logging only

        Returns:
            The action to take
        """
        if not dealer_upcard_value:
            return Action.STAND
        if hand.is_blackjack or hand.is_busted:
            return Action.STAND

        upcard = normalize_upcard(dealer_upcard_value)

        if can_split and self._pair_says_split(hand, upcard):
            code = StrategyCode.SPLIT
        else:
            code = self._lookup(hand, upcard)

        action = self._to_action(code, can_double, can_surrender)

        decision_logger.log_strategy_lookup(
            self._describe(hand), str(upcard), action.value,
            fallback_used=action.value != code.name.lower(),
        )
        decision_logger.log_decision(player_name, hand, upcard, code, action)
        return action

    def decide_insurance(self) -> bool:
        """Basic strategy never takes insurance."""
        return False

    def get_bet_amount(
        self,
        chips: int,
        min_bet: int,
        max_bet: int,
        denominations: Sequence[int] = CHIP_DENOMINATIONS,
    ) -> int:
        """
        Conservative bet sizing: 5% of chips rounded down to a chip denomination.

        A zero after rounding falls back to the minimum bet; the result is
        clamped to ``[min_bet, min(max_bet, chips)]``.
        """
        target = floor(chips * AI_BET_PERCENTAGE)
        rounded = round_to_denomination(target, denominations)
        return int(clamp(rounded or min_bet, min_bet, min(max_bet, chips)))

    def _pair_says_split(self, hand: "HandState", upcard: int) -> bool:
        if not is_pair(hand.cards):
            return False
        value = pair_value(hand.cards)
        return PAIR_TABLE[value - PAIR_FIRST_ROW][upcard - UPCARD_FIRST_COLUMN]

    def _lookup(self, hand: "HandState", upcard: int) -> StrategyCode:
        column = upcard - UPCARD_FIRST_COLUMN
        if hand.is_soft and SOFT_FIRST_ROW <= hand.score <= 21:
            return SOFT_TABLE[hand.score - SOFT_FIRST_ROW][column]
        total = int(clamp(hand.score, HARD_FIRST_ROW, 21))
        return HARD_TABLE[total - HARD_FIRST_ROW][column]

    @staticmethod
    def _to_action(code: StrategyCode, can_double: bool, can_surrender: bool) -> Action:
        if code is StrategyCode.STAND:
            return Action.STAND
        if code is StrategyCode.DOUBLE:
            return Action.DOUBLE if can_double else Action.HIT
        if code is StrategyCode.SURRENDER:
            return Action.SURRENDER if can_surrender else Action.HIT
        if code is StrategyCode.SPLIT:
            return Action.SPLIT
        return Action.HIT

    @staticmethod
    def _describe(hand: "HandState") -> str:
        if is_pair(hand.cards):
            return f"Pair{pair_value(hand.cards)}"
        return f"{'Soft' if hand.is_soft else 'Hard'}{hand.score}"


basic_strategy = BasicStrategy()

"""
Blackjack table rules.

This module holds the configurable `Settings` and `TableLimits` and the pure
rule functions built on them: action legality, the dealer's drawing policy,
winner determination and payout arithmetic. Nothing here keeps state between
calls; every function takes hands, players and settings and returns a value.
"""

from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from math import floor
from typing import TYPE_CHECKING, Any, Dict, List, Tuple

from felt.blackjack.action import Action
from felt.blackjack.constants import (
    BLACKJACK_PAYOUT_3_2,
    BLACKJACK_PAYOUT_6_5,
    BLACKJACK_SCORE,
    CHIP_DENOMINATIONS,
    DEALER_STAND_THRESHOLD,
    INSURANCE_PAYOUT,
    MAX_BET,
    MAX_DECKS,
    MAX_HANDS_PER_PLAYER,
    MIN_BET,
    MIN_DECKS,
    STARTING_CHIPS,
)
from felt.blackjack.errors import EngineInvariantError, InvalidConfiguration
from felt.blackjack.hand import is_pair
from felt.common.card import Rank

if TYPE_CHECKING:
    from felt.state.models import DealerState, HandState, PlayerState


class BlackjackPayout(Enum):
    """Payout ratio for a natural blackjack."""

    THREE_TO_TWO = "3:2"
    SIX_TO_FIVE = "6:5"

    @property
    def multiplier(self) -> float:
        if self is BlackjackPayout.THREE_TO_TWO:
            return BLACKJACK_PAYOUT_3_2
        return BLACKJACK_PAYOUT_6_5

    def __str__(self) -> str:
        return self.value


class AnimationSpeed(Enum):
    """Presentation pacing. Carried for the UI, ignored by the engine."""

    SLOW = "slow"
    NORMAL = "normal"
    FAST = "fast"

    def __str__(self) -> str:
        return self.value


class RoundResult(Enum):
    """Outcome of a single hand. PENDING means not yet resolved."""

    WIN = "win"
    LOSE = "lose"
    PUSH = "push"
    BLACKJACK = "blackjack"
    SURRENDER = "surrender"
    PENDING = "pending"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Settings:
    """
    Rule configuration, fixed for the duration of a round.

    Attributes:
        number_of_decks: Decks in the shoe (1-8)
        dealer_hits_soft_17: Whether the dealer draws on a soft 17
        blackjack_pays: Payout ratio for a natural
        allow_surrender: Whether late surrender is offered
        allow_double_after_split: Whether split hands may be doubled
        allow_rebuy: Whether a broke player may start over
        animation_speed: Passed through to the presentation layer
    """

    number_of_decks: int = 6
    dealer_hits_soft_17: bool = True
    blackjack_pays: BlackjackPayout = BlackjackPayout.THREE_TO_TWO
    allow_surrender: bool = True
    allow_double_after_split: bool = True
    allow_rebuy: bool = True
    animation_speed: AnimationSpeed = AnimationSpeed.NORMAL

    def __post_init__(self):
        try:
            object.__setattr__(
                self, "blackjack_pays", BlackjackPayout(self.blackjack_pays)
            )
            object.__setattr__(
                self, "animation_speed", AnimationSpeed(self.animation_speed)
            )
        except ValueError as exc:
            raise InvalidConfiguration(str(exc)) from exc

        decks = self.number_of_decks
        if (
            isinstance(decks, bool)
            or not isinstance(decks, int)
            or not MIN_DECKS <= decks <= MAX_DECKS
        ):
            raise InvalidConfiguration(
                f"Invalid deck count: {decks}. Must be between {MIN_DECKS} and {MAX_DECKS}."
            )
        for name in (
            "dealer_hits_soft_17",
            "allow_surrender",
            "allow_double_after_split",
            "allow_rebuy",
        ):
            if not isinstance(getattr(self, name), bool):
                raise InvalidConfiguration(f"Setting '{name}' must be a boolean")

    @property
    def blackjack_multiplier(self) -> float:
        return self.blackjack_pays.multiplier

    def merged(self, **changes: Any) -> "Settings":
        """
        Return new settings with `changes` applied.

        Raises:
            InvalidConfiguration: If a key is unknown or a value is invalid
        """
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise InvalidConfiguration(f"Unknown settings: {sorted(unknown)}")
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to a dictionary for serialization."""
        data = asdict(self)
        data["blackjack_pays"] = self.blackjack_pays.value
        data["animation_speed"] = self.animation_speed.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        """Build settings from a dictionary, ignoring unknown keys."""
        if not isinstance(data, dict):
            raise InvalidConfiguration("Settings must be a mapping")
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class TableLimits:
    """Betting limits and bankroll for the table."""

    min_bet: int = MIN_BET
    max_bet: int = MAX_BET
    starting_chips: int = STARTING_CHIPS
    chip_denominations: Tuple[int, ...] = CHIP_DENOMINATIONS

    def __post_init__(self):
        object.__setattr__(self, "chip_denominations", tuple(self.chip_denominations))
        if self.min_bet <= 0:
            raise InvalidConfiguration("Minimum bet must be positive")
        if self.max_bet < self.min_bet:
            raise InvalidConfiguration("Maximum bet must not be below the minimum bet")
        if self.starting_chips < self.min_bet:
            raise InvalidConfiguration("Starting chips must cover the minimum bet")
        if not self.chip_denominations or min(self.chip_denominations) <= 0:
            raise InvalidConfiguration("Chip denominations must be positive")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["chip_denominations"] = list(self.chip_denominations)
        return data


# =============================================================================
# ACTION LEGALITY
# =============================================================================


def active_bet(player: "PlayerState") -> int:
    """Bet on the player's active hand."""
    if player.active_hand_index < len(player.bets):
        return player.bets[player.active_hand_index]
    return 0


def can_hit(hand: "HandState") -> bool:
    """A hand may draw while it is neither busted nor at 21."""
    return not hand.is_busted and hand.score < BLACKJACK_SCORE


def can_stand(hand: "HandState") -> bool:
    return len(hand.cards) > 0


def can_double_down(
    hand: "HandState", player: "PlayerState", settings: Settings
) -> bool:
    """
    Check if the hand can be doubled down.

    Doubling is allowed on the first two cards when the player can cover the
    bet again; split hands also need `allow_double_after_split`.
    """
    if len(hand.cards) != 2 or hand.is_busted:
        return False
    if player.chips < active_bet(player):
        return False
    if hand.is_split and not settings.allow_double_after_split:
        return False
    return True


def can_split(hand: "HandState", player: "PlayerState") -> bool:
    """Check if the hand is a pair the player can afford to split."""
    if not is_pair(hand.cards):
        return False
    if len(player.hands) >= MAX_HANDS_PER_PLAYER:
        return False
    return player.chips >= active_bet(player)


def can_surrender(
    hand: "HandState", player: "PlayerState", settings: Settings
) -> bool:
    """Surrender is a first action on an untouched two-card hand that is not a natural."""
    if not settings.allow_surrender or player.has_acted:
        return False
    return len(hand.cards) == 2 and not hand.is_blackjack


def available_actions(player: "PlayerState", settings: Settings) -> List[Action]:
    """
    List the legal actions for the player's active hand.

    Returns:
        Actions in the order hit, stand, double, split, surrender
    """
    if not player.hands or player.active_hand_index >= len(player.hands):
        return []
    hand = player.hands[player.active_hand_index]

    actions = []
    if can_hit(hand):
        actions.append(Action.HIT)
    if can_stand(hand):
        actions.append(Action.STAND)
    if can_double_down(hand, player, settings):
        actions.append(Action.DOUBLE)
    if can_split(hand, player):
        actions.append(Action.SPLIT)
    if can_surrender(hand, player, settings):
        actions.append(Action.SURRENDER)
    return actions


# =============================================================================
# INSURANCE
# =============================================================================


def should_offer_insurance(dealer: "DealerState") -> bool:
    """Insurance is offered when the dealer's upcard is an ace."""
    upcard = dealer.upcard
    return upcard is not None and upcard.rank is Rank.ACE


def insurance_cost(bet: int) -> int:
    """Insurance costs half the original bet, rounded down."""
    return floor(bet / 2)


def can_buy_insurance(player: "PlayerState", dealer: "DealerState") -> bool:
    if not should_offer_insurance(dealer) or player.has_insurance:
        return False
    original_bet = player.bets[0] if player.bets else 0
    return player.chips >= insurance_cost(original_bet)


# =============================================================================
# DEALER
# =============================================================================


def dealer_should_hit(hand: "HandState", settings: Settings) -> bool:
    """Dealer draws below 17, stands above, and hits soft 17 only when the rules say so."""
    if hand.score < DEALER_STAND_THRESHOLD:
        return True
    if hand.score > DEALER_STAND_THRESHOLD:
        return False
    return hand.is_soft and settings.dealer_hits_soft_17


# =============================================================================
# RESULTS AND PAYOUTS
# =============================================================================


def determine_winner(
    player_hand: "HandState", dealer_hand: "HandState", surrendered: bool = False
) -> RoundResult:
    """
    Determine the result of a hand against the dealer.

    Checked in order: surrender, player bust, naturals, dealer bust, totals.
    """
    if surrendered:
        return RoundResult.SURRENDER
    if player_hand.is_busted:
        return RoundResult.LOSE
    if player_hand.is_blackjack:
        if dealer_hand.is_blackjack:
            return RoundResult.PUSH
        return RoundResult.BLACKJACK
    if dealer_hand.is_blackjack:
        return RoundResult.LOSE
    if dealer_hand.is_busted:
        return RoundResult.WIN
    if player_hand.score > dealer_hand.score:
        return RoundResult.WIN
    if player_hand.score < dealer_hand.score:
        return RoundResult.LOSE
    return RoundResult.PUSH


def calculate_payout(result: RoundResult, bet: int, settings: Settings) -> int:
    """
    Net payout for a resolved hand: positive for wins, negative for losses.

    Raises:
        EngineInvariantError: If the hand is still pending
    """
    if result is RoundResult.BLACKJACK:
        return floor(bet * settings.blackjack_multiplier)
    if result is RoundResult.WIN:
        return bet
    if result is RoundResult.PUSH:
        return 0
    if result is RoundResult.SURRENDER:
        return -floor(bet / 2)
    if result is RoundResult.LOSE:
        return -bet
    raise EngineInvariantError(f"Cannot pay out an unresolved hand ({result})")


def calculate_insurance_payout(insurance_bet: int, dealer_has_blackjack: bool) -> int:
    """Insurance pays 2:1 when the dealer has blackjack and is lost otherwise."""
    if dealer_has_blackjack:
        return insurance_bet * INSURANCE_PAYOUT
    return -insurance_bet


def calculate_total_payout(
    player: "PlayerState", dealer_hand: "HandState", settings: Settings
) -> int:
    """Sum the payouts of every hand the player holds plus insurance."""
    total = 0
    for hand, bet in zip(player.hands, player.bets):
        result = determine_winner(hand, dealer_hand, hand.is_surrendered)
        total += calculate_payout(result, bet, settings)
    if player.has_insurance:
        total += calculate_insurance_payout(
            player.insurance_bet, dealer_hand.is_blackjack
        )
    return total


def settle_chips(player: "PlayerState", total_payout: int) -> int:
    """
    Chip balance after settlement.

    Stakes were debited when placed, so they are returned before the net
    payout is applied.
    """
    stakes = sum(player.bets) + player.insurance_bet
    return player.chips + stakes + total_payout

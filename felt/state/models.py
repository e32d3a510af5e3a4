"""
Immutable state models for the felt engine.

This module provides dataclasses for representing the state of a blackjack
table in an immutable manner. These classes are designed to be used with pure
transition functions that create new state instances rather than modifying
existing ones.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from felt.blackjack.hand import format_score, score
from felt.blackjack.rules import RoundResult, Settings, TableLimits
from felt.blackjack.stats import SessionStats
from felt.common.card import Card


class GamePhase(Enum):
    """
    Phases of a blackjack round.
    """

    IDLE = "idle"
    BETTING = "betting"
    DEALING = "dealing"
    INSURANCE = "insurance"
    PLAYING = "playing"
    DEALER_TURN = "dealer-turn"
    PAYOUT = "payout"
    ROUND_END = "round-end"

    def __str__(self) -> str:
        return self.value


class PlayerType(Enum):
    HUMAN = "user"
    AI = "ai"


@dataclass(frozen=True)
class HandState:
    """
    Immutable representation of a card hand.

    The score fields are computed from `cards` when the hand is built and
    cannot be passed in, so they always describe the cards held.

    Attributes:
        cards: Cards in the hand, in the order received
        is_split: Whether this hand was created via a split
        is_surrendered: Whether the hand has been surrendered
        score: Best total of the hand
        is_soft: Whether an ace is still counted as 11
        is_busted: Whether the total is over 21
        is_blackjack: Whether the hand is exactly two cards totalling 21
    """

    cards: Tuple[Card, ...] = ()
    is_split: bool = False
    is_surrendered: bool = False
    score: int = field(init=False, default=0)
    is_soft: bool = field(init=False, default=False)
    is_busted: bool = field(init=False, default=False)
    is_blackjack: bool = field(init=False, default=False)

    def __post_init__(self):
        cards = tuple(self.cards)
        total, soft = score(cards)
        object.__setattr__(self, "cards", cards)
        object.__setattr__(self, "score", total)
        object.__setattr__(self, "is_soft", soft)
        object.__setattr__(self, "is_busted", total > 21)
        object.__setattr__(self, "is_blackjack", len(cards) == 2 and total == 21)

    def add_card(self, card: Card, face_up: bool = True) -> "HandState":
        """Return a new hand with `card` appended."""
        return replace(self, cards=self.cards + (card.turned(face_up),))

    def reveal(self) -> "HandState":
        """Return a new hand with every card face up."""
        return replace(self, cards=tuple(card.turned(True) for card in self.cards))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cards": [card.id for card in self.cards],
            "score": self.score,
            "display": format_score(self),
            "is_soft": self.is_soft,
            "is_busted": self.is_busted,
            "is_blackjack": self.is_blackjack,
            "is_split": self.is_split,
            "is_surrendered": self.is_surrendered,
        }


@dataclass(frozen=True)
class PlayerState:
    """
    Immutable representation of a seat at the table.

    `hands`, `bets` and `results` are parallel tuples: entry i of each
    describes the same hand.

    Attributes:
        id: Seat identifier ("player-<position>")
        name: Display name of the player
        type: Human or computer-controlled
        position: Seat position, left to right
        hands: Hands the player holds (more than one only after a split)
        active_hand_index: Index of the hand currently receiving actions
        bets: Stake on each hand
        chips: Chips not currently staked
        is_active: Whether it is this seat's turn
        has_insurance: Whether insurance was bought this round
        insurance_bet: Stake on insurance
        has_acted: Whether the active hand has received an action
        results: Outcome of each hand
    """

    id: str
    name: str
    type: PlayerType
    position: int
    hands: Tuple[HandState, ...] = (HandState(),)
    active_hand_index: int = 0
    bets: Tuple[int, ...] = (0,)
    chips: int = 0
    is_active: bool = False
    has_insurance: bool = False
    insurance_bet: int = 0
    has_acted: bool = False
    results: Tuple[RoundResult, ...] = (RoundResult.PENDING,)

    @property
    def current_hand(self) -> Optional[HandState]:
        """Get the player's active hand."""
        if not self.hands or self.active_hand_index >= len(self.hands):
            return None
        return self.hands[self.active_hand_index]

    @property
    def has_surrendered(self) -> bool:
        return any(hand.is_surrendered for hand in self.hands)

    @property
    def is_human(self) -> bool:
        return self.type is PlayerType.HUMAN

    @property
    def is_ai(self) -> bool:
        return self.type is PlayerType.AI

    @property
    def total_bet(self) -> int:
        return sum(self.bets)

    @property
    def in_round(self) -> bool:
        """A seat takes part in a round once it has a stake."""
        return self.total_bet > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "position": self.position,
            "hands": [hand.to_dict() for hand in self.hands],
            "active_hand_index": self.active_hand_index,
            "bets": list(self.bets),
            "chips": self.chips,
            "is_active": self.is_active,
            "has_surrendered": self.has_surrendered,
            "has_insurance": self.has_insurance,
            "insurance_bet": self.insurance_bet,
            "has_acted": self.has_acted,
            "results": [result.value for result in self.results],
        }


@dataclass(frozen=True)
class DealerState:
    """
    Immutable representation of the dealer's state.

    Attributes:
        hand: The dealer's current hand
        hole_card_revealed: Whether the face-down second card has been turned
    """

    hand: HandState = field(default_factory=HandState)
    hole_card_revealed: bool = False

    @property
    def upcard(self) -> Optional[Card]:
        """The dealer's first face-up card, if any."""
        for card in self.hand.cards:
            if card.face_up:
                return card
        return None

    @property
    def visible_cards(self) -> List[Card]:
        """Get the dealer's visible cards."""
        if self.hole_card_revealed:
            return list(self.hand.cards)
        return [card for card in self.hand.cards if card.face_up]

    @property
    def visible_score(self) -> int:
        """Calculate the value of the visible cards."""
        return score(self.visible_cards).total

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "hole_card_revealed": self.hole_card_revealed,
            "cards": [card.id if card.face_up else "hidden" for card in self.hand.cards],
            "visible_score": self.visible_score,
        }
        if self.hole_card_revealed:
            data["hand"] = self.hand.to_dict()
        return data


@dataclass(frozen=True)
class GameState:
    """
    Immutable representation of the table.

    Attributes:
        players: All seats, in seat order
        dealer: The dealer's state
        shoe: Remaining cards; the top of the shoe is the end of the tuple
        current_player_index: Index of the seat whose turn it is
        phase: Current phase of the round
        round_number: Current round number
        settings: Rule configuration
        limits: Betting limits and bankroll
        stats: Session statistics for the human seat
        shuffle_count: Number of shoes built this session
    """

    players: Tuple[PlayerState, ...] = ()
    dealer: DealerState = field(default_factory=DealerState)
    shoe: Tuple[Card, ...] = ()
    current_player_index: int = 0
    phase: GamePhase = GamePhase.IDLE
    round_number: int = 0
    settings: Settings = field(default_factory=Settings)
    limits: TableLimits = field(default_factory=TableLimits)
    stats: SessionStats = field(default_factory=SessionStats)
    shuffle_count: int = 0

    @property
    def current_player(self) -> Optional[PlayerState]:
        """Get the seat whose turn it is."""
        if not self.players or self.current_player_index >= len(self.players):
            return None
        return self.players[self.current_player_index]

    @property
    def human(self) -> Optional[PlayerState]:
        for player in self.players:
            if player.is_human:
                return player
        return None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the game state to a dictionary suitable for serialization.

        The dealer's hole card is reported as "hidden" until it is revealed.

        Returns:
            Dictionary representation of the game state
        """
        return {
            "phase": self.phase.value,
            "round_number": self.round_number,
            "current_player_index": self.current_player_index,
            "shoe_cards_remaining": len(self.shoe),
            "shuffle_count": self.shuffle_count,
            "settings": self.settings.to_dict(),
            "limits": self.limits.to_dict(),
            "stats": self.stats.report(),
            "dealer": self.dealer.to_dict(),
            "players": [player.to_dict() for player in self.players],
        }

"""
Decision log for the computer-controlled seats.

Every basic-strategy decision can be traced back to the table cell it came
from: the lookup is logged at DEBUG, the decision at INFO, and decisions are
kept per round so a session can be summarised afterwards. Set the
``FELT_DISABLE_LOGGING`` environment variable to silence it for long
simulations.
"""

import logging
import os
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Deque, Dict, List

from felt.blackjack.action import Action

if TYPE_CHECKING:
    from felt.blackjack.strategy import StrategyCode
    from felt.state.models import HandState

DISABLE_ENV = "FELT_DISABLE_LOGGING"
HISTORY_SIZE = 10000


def logging_disabled() -> bool:
    return os.environ.get(DISABLE_ENV, "").lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class DecisionContext:
    """One strategy decision and the table cell behind it."""

    player_name: str
    hand_cards: List[str]
    hand_value: int
    is_soft: bool
    dealer_upcard: int
    table_code: str
    chosen_action: Action
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def overridden(self) -> bool:
        """Whether the table's choice was replaced because it was not legal."""
        return self.table_code not in ("H", "S", "P") and self.chosen_action in (
            Action.HIT,
            Action.STAND,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "player": self.player_name,
            "cards": self.hand_cards,
            "value": self.hand_value,
            "soft": self.is_soft,
            "dealer_up": self.dealer_upcard,
            "code": self.table_code,
            "chosen": self.chosen_action.value,
        }


class DecisionLogger:
    """Logs and records the decisions of the AI seats."""

    def __init__(self, log_level=logging.DEBUG, history_size: int = HISTORY_SIZE):
        self.logger = logging.getLogger("felt.decisions")
        self.history_size = history_size
        self.logger.setLevel(logging.ERROR if logging_disabled() else log_level)

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            self.logger.addHandler(handler)

        # Oldest decisions are dropped once the history is full
        self.decision_history: Deque[DecisionContext] = deque(maxlen=history_size)
        self.current_round_decisions: List[DecisionContext] = []

    def set_level(self, level):
        self.logger.setLevel(level)

    def log_decision(
        self,
        player_name: str,
        hand: "HandState",
        upcard: int,
        code: "StrategyCode",
        action: Action,
    ):
        """Record a decision; nothing is kept unless INFO is enabled."""
        if not self.logger.isEnabledFor(logging.INFO):
            return
        context = DecisionContext(
            player_name=player_name,
            hand_cards=[str(c) for c in hand.cards],
            hand_value=hand.score,
            is_soft=hand.is_soft,
            dealer_upcard=upcard,
            table_code=code.value,
            chosen_action=action,
        )
        self.current_round_decisions.append(context)
        kind = "soft" if hand.is_soft else "hard"
        self.logger.info(
            f"{player_name}: {action.value} on {kind} {hand.score} "
            f"{context.hand_cards} vs {upcard} [{code.value}]"
        )

    def log_strategy_lookup(
        self, hand_type: str, dealer_card: str, action: str, fallback_used: bool = False
    ):
        if self.logger.isEnabledFor(logging.DEBUG):
            suffix = " (not legal, hitting instead)" if fallback_used else ""
            self.logger.debug(f"Lookup {hand_type} vs {dealer_card} -> {action}{suffix}")

    def log_round_start(self, round_num: int, players: List[str]):
        """Start a new round of decisions."""
        self.current_round_decisions = []
        if self.logger.isEnabledFor(logging.INFO):
            self.logger.info(f"Round {round_num} dealt to {', '.join(players)}")

    def log_round_end(self, outcomes: Dict[str, Any]):
        """Log each seat's outcome and archive the round's decisions."""
        if self.logger.isEnabledFor(logging.INFO):
            for player, outcome in outcomes.items():
                self.logger.info(f"Round over, {player}: {outcome}")

        self.decision_history.extend(self.current_round_decisions)
        self.current_round_decisions = []

    def get_decision_summary(self) -> Dict[str, Any]:
        """Counts of archived decisions overall, by action and by seat."""
        history = self.decision_history
        return {
            "total_decisions": len(history),
            "by_action": dict(Counter(d.chosen_action.value for d in history)),
            "by_player": dict(Counter(d.player_name for d in history)),
            "overridden": sum(1 for d in history if d.overridden),
        }

    def clear(self):
        self.decision_history.clear()
        self.current_round_decisions = []


decision_logger = DecisionLogger()

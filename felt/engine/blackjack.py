"""
Blackjack engine implementation.

This module provides the BlackjackEngine class, the caller-owned facade over
the pure state transitions. It holds the current `GameState`, applies one
command at a time, and publishes what happened through the event system so a
presentation layer can render the table without inspecting every field.
"""

import logging
import random
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from felt.blackjack.action import Action
from felt.blackjack.errors import BlackjackError, EngineInvariantError
from felt.blackjack.rules import Settings, TableLimits
from felt.events import EngineEventType, EventBus, EventEmitter
from felt.state import GamePhase, GameState, PlayerState, StateTransitionEngine
from felt.state.persistence import (
    PathLike,
    export_persisted,
    import_persisted,
    load_persisted,
    load_persisted_async,
    save_persisted,
    save_persisted_async,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "settings": {},
    "min_bet": None,
    "max_bet": None,
    "starting_chips": None,
    "seed": None,
}


class BlackjackEngine:
    """
    Engine implementation for Blackjack.

    Every command returns the new state. A rejected command raises the typed
    error from `felt.blackjack.errors` after emitting an ERROR event, and the
    engine keeps the state it had before the command.

    Config keys:
        settings: Mapping of `Settings` fields
        min_bet, max_bet, starting_chips: Table limits
        seed: Seed for a reproducible shuffle
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        emitter: Optional[EventEmitter] = None,
    ):
        """
        Initialize the blackjack engine.

        Args:
            config: Configuration options for the table
            emitter: Event emitter to publish to, defaults to the global EventBus
        """
        self.config = {**DEFAULT_CONFIG, **(config or {})}
        self.event_bus = emitter or EventBus.get_instance()
        self.rng = random.Random(self.config["seed"])

        limits = {
            key: self.config[key]
            for key in ("min_bet", "max_bet", "starting_chips")
            if self.config[key] is not None
        }
        self._state = GameState(
            settings=Settings.from_dict(self.config["settings"] or {}),
            limits=TableLimits(**limits),
        )

    # =========================================================================
    # QUERIES
    # =========================================================================

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def human(self) -> PlayerState:
        return StateTransitionEngine.human_player(self._state)

    def snapshot(self) -> Dict[str, Any]:
        """JSON-friendly view of the table with the hole card hidden."""
        return self._state.to_dict()

    def available_actions(self, player_id: str) -> List[Action]:
        return StateTransitionEngine.available_actions(self._state, player_id)

    def is_broke(self) -> bool:
        return StateTransitionEngine.is_broke(self._state)

    # =========================================================================
    # SESSION
    # =========================================================================

    def init_game(self) -> GameState:
        state = self._apply("init_game", StateTransitionEngine.init_game, self.rng)
        self.event_bus.emit(
            EngineEventType.GAME_STARTED,
            {
                "round_number": state.round_number,
                "settings": state.settings.to_dict(),
                "players": [p.id for p in state.players],
            },
        )
        return state

    def start_over(self) -> GameState:
        state = self._apply("start_over", StateTransitionEngine.start_over, self.rng)
        self.event_bus.emit(
            EngineEventType.GAME_RESET, {"chips": state.limits.starting_chips}
        )
        return state

    def update_settings(self, **changes: Any) -> GameState:
        state = self._apply(
            "update_settings", StateTransitionEngine.update_settings, self.rng, **changes
        )
        self.event_bus.emit(
            EngineEventType.SETTINGS_CHANGED,
            {"changes": changes, "settings": state.settings.to_dict()},
        )
        return state

    # =========================================================================
    # BETTING
    # =========================================================================

    def place_bet(self, player_id: str, amount: int) -> GameState:
        state = self._apply(
            "place_bet", StateTransitionEngine.place_bet, player_id, amount
        )
        self.event_bus.emit(
            EngineEventType.PLAYER_BET,
            {
                "player_id": player_id,
                "amount": amount,
                "total": self._player(player_id).bets[0],
            },
        )
        return state

    def clear_bet(self, player_id: str) -> GameState:
        state = self._apply("clear_bet", StateTransitionEngine.clear_bet, player_id)
        self.event_bus.emit(EngineEventType.BET_CLEARED, {"player_id": player_id})
        return state

    def start_dealing(self) -> GameState:
        state = self._apply("start_dealing", StateTransitionEngine.start_dealing)
        self.event_bus.emit(
            EngineEventType.ROUND_STARTED,
            {
                "round_number": state.round_number,
                "bets": {p.id: p.bets[0] for p in state.players},
            },
        )
        return state

    # =========================================================================
    # DEALING AND INSURANCE
    # =========================================================================

    def deal_initial_cards(self) -> GameState:
        state = self._apply(
            "deal_initial_cards", StateTransitionEngine.deal_initial_cards
        )
        upcard = state.dealer.upcard
        self.event_bus.emit(
            EngineEventType.CARDS_DEALT,
            {
                "dealer_upcard": upcard.id if upcard else None,
                "cards_remaining": len(state.shoe),
            },
        )
        if state.phase is GamePhase.INSURANCE:
            self.event_bus.emit(
                EngineEventType.INSURANCE_OFFERED, {"player_id": self.human.id}
            )
        self._announce_turn(state)
        return state

    def buy_insurance(self, player_id: str) -> GameState:
        state = self._apply(
            "buy_insurance", StateTransitionEngine.buy_insurance, player_id
        )
        self._insurance_decided(state, player_id)
        return state

    def decline_insurance(self, player_id: str) -> GameState:
        state = self._apply(
            "decline_insurance", StateTransitionEngine.decline_insurance, player_id
        )
        self._insurance_decided(state, player_id)
        return state

    # =========================================================================
    # PLAYER ACTIONS
    # =========================================================================

    def hit(self, player_id: str) -> GameState:
        return self._player_action(Action.HIT, StateTransitionEngine.hit, player_id)

    def stand(self, player_id: str) -> GameState:
        return self._player_action(Action.STAND, StateTransitionEngine.stand, player_id)

    def double_down(self, player_id: str) -> GameState:
        return self._player_action(
            Action.DOUBLE, StateTransitionEngine.double_down, player_id
        )

    def split(self, player_id: str) -> GameState:
        return self._player_action(Action.SPLIT, StateTransitionEngine.split, player_id)

    def surrender(self, player_id: str) -> GameState:
        return self._player_action(
            Action.SURRENDER, StateTransitionEngine.surrender, player_id
        )

    def act(self, player_id: str, action: Action) -> GameState:
        """Dispatch an `Action` to the matching command."""
        commands = {
            Action.HIT: self.hit,
            Action.STAND: self.stand,
            Action.DOUBLE: self.double_down,
            Action.SPLIT: self.split,
            Action.SURRENDER: self.surrender,
        }
        return commands[Action(action)](player_id)

    # =========================================================================
    # DEALER AND ROUND END
    # =========================================================================

    def play_dealer_turn(self) -> GameState:
        previous = self._state
        state = self._apply("play_dealer_turn", StateTransitionEngine.play_dealer_turn)

        hole_card = state.dealer.hand.cards[1] if len(state.dealer.hand.cards) > 1 else None
        self.event_bus.emit(
            EngineEventType.CARD_REVEALED,
            {"card": hole_card.id if hole_card else None},
        )
        self.event_bus.emit(
            EngineEventType.DEALER_ACTION,
            {
                "cards": [c.id for c in state.dealer.hand.cards],
                "score": state.dealer.hand.score,
                "busted": state.dealer.hand.is_busted,
            },
        )

        for before, player in zip(previous.players, state.players):
            if not player.in_round:
                continue
            for index, (result, bet) in enumerate(zip(player.results, player.bets)):
                self.event_bus.emit(
                    EngineEventType.HAND_RESULT,
                    {
                        "player_id": player.id,
                        "hand_index": index,
                        "result": result.value,
                        "bet": bet,
                    },
                )
            self.event_bus.emit(
                EngineEventType.BANKROLL_UPDATED,
                {
                    "player_id": player.id,
                    "chips": player.chips,
                    "net": player.chips
                    - (before.chips + before.total_bet + before.insurance_bet),
                },
            )

        self.event_bus.emit(
            EngineEventType.ROUND_ENDED,
            {"round_number": state.round_number, "stats": state.stats.report()},
        )
        if StateTransitionEngine.is_broke(state):
            self.event_bus.emit(
                EngineEventType.PLAYER_BROKE,
                {
                    "player_id": self.human.id,
                    "chips": self.human.chips,
                    "can_rebuy": state.settings.allow_rebuy,
                },
            )
        return state

    def next_round(self) -> GameState:
        return self._apply("next_round", StateTransitionEngine.next_round, self.rng)

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def export_persisted(self) -> Dict[str, Any]:
        return export_persisted(self._state)

    def import_persisted(self, data: Dict[str, Any]) -> GameState:
        """
        Restore settings and stats from a persisted slice.

        Only allowed between rounds; a changed deck count replaces the shoe.
        """
        def restore(state: GameState) -> GameState:
            imported = import_persisted(state, data)
            return StateTransitionEngine.update_settings(
                replace(state, stats=imported.stats),
                self.rng,
                **imported.settings.to_dict(),
            )

        state = self._apply("import_persisted", restore)
        self.event_bus.emit(
            EngineEventType.SETTINGS_CHANGED,
            {"changes": data.get("settings", {}), "settings": state.settings.to_dict()},
        )
        return state

    def save(self, path: PathLike) -> Path:
        return save_persisted(self._state, path)

    def load(self, path: PathLike) -> GameState:
        return self.import_persisted(load_persisted(path))

    async def save_async(self, path: PathLike) -> Path:
        return await save_persisted_async(self._state, path)

    async def load_async(self, path: PathLike) -> GameState:
        return self.import_persisted(await load_persisted_async(path))

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _apply(self, command: str, transition: Callable, *args, **kwargs) -> GameState:
        """Run a transition against the current state and keep the result."""
        previous = self._state
        try:
            state = transition(previous, *args, **kwargs)
        except EngineInvariantError as e:
            logger.error(f"Engine invariant violated during {command}: {e}", exc_info=True)
            self._emit_error(command, e)
            raise
        except BlackjackError as e:
            logger.warning(f"Rejected {command}: {e}")
            self._emit_error(command, e)
            raise

        self._state = state
        logger.debug(f"{command}: {previous.phase} -> {state.phase}")

        if state.shuffle_count > previous.shuffle_count:
            self.event_bus.emit(
                EngineEventType.SHUFFLE,
                {
                    "decks": state.settings.number_of_decks,
                    "cards": len(state.shoe),
                    "shuffle_count": state.shuffle_count,
                },
            )
        self.event_bus.emit(
            EngineEventType.UI_UPDATE_NEEDED,
            {"command": command, "phase": state.phase.value},
        )
        return state

    def _emit_error(self, command: str, error: BlackjackError) -> None:
        self.event_bus.emit(
            EngineEventType.ERROR,
            {
                "command": command,
                "error": type(error).__name__,
                "message": str(error),
                "phase": self._state.phase.value,
            },
        )

    def _player(self, player_id: str) -> Optional[PlayerState]:
        for player in self._state.players:
            if player.id == player_id:
                return player
        return None

    def _player_action(
        self, action: Action, transition: Callable, player_id: str
    ) -> GameState:
        previous = self._player(player_id)
        state = self._apply(action.value, transition, player_id)

        self.event_bus.emit(
            EngineEventType.PLAYER_ACTION,
            {"player_id": player_id, "action": action.value},
        )
        if previous is not None:
            player = self._player(player_id)
            index = previous.active_hand_index
            if action is Action.SPLIT:
                self.event_bus.emit(
                    EngineEventType.HAND_SPLIT,
                    {"player_id": player_id, "hands": len(player.hands)},
                )
            elif player.hands[index].is_busted:
                self.event_bus.emit(
                    EngineEventType.HAND_BUSTED,
                    {"player_id": player_id, "hand_index": index},
                )
        self._announce_turn(state)
        return state

    def _insurance_decided(self, state: GameState, player_id: str) -> None:
        player = self._player(player_id)
        self.event_bus.emit(
            EngineEventType.INSURANCE_DECISION,
            {
                "player_id": player_id,
                "bought": player.has_insurance,
                "amount": player.insurance_bet,
            },
        )
        self._announce_turn(state)

    def _announce_turn(self, state: GameState) -> None:
        """Tell listeners when the human has a decision to make."""
        player = state.current_player
        if state.phase is GamePhase.PLAYING and player is not None and player.is_human:
            self.event_bus.emit(
                EngineEventType.PLAYER_DECISION_NEEDED,
                {
                    "player_id": player.id,
                    "hand_index": player.active_hand_index,
                    "actions": [a.value for a in self.available_actions(player.id)],
                },
            )

"""
State transition functions for the felt engine.

This module provides pure functions for moving a blackjack table from one
phase of a round to the next, without modifying the original state objects.
Every command checks the phase and the legality of the request first and
raises a typed error from `felt.blackjack.errors` when it cannot be honoured;
because states are immutable, a rejected command leaves the caller's state
exactly as it was.

Computer-controlled seats are played to completion as soon as they become
the active seat, so after any command the table is either waiting on the
human, waiting on an explicit phase command, or finished with the round.
"""

import logging
import random
from dataclasses import replace
from typing import Any, List, Optional, Tuple

from felt.blackjack.action import Action
from felt.blackjack.decision_logger import decision_logger
from felt.blackjack.errors import IllegalAction, InvalidBet, InvalidPhaseTransition
from felt.blackjack.rules import (
    RoundResult,
    active_bet,
    available_actions as legal_actions,
    calculate_payout,
    calculate_total_payout,
    can_buy_insurance,
    can_double_down,
    can_hit,
    can_split,
    can_stand,
    can_surrender,
    dealer_should_hit,
    determine_winner,
    insurance_cost,
    settle_chips,
    should_offer_insurance,
)
from felt.blackjack.stats import SessionStats
from felt.blackjack.strategy import basic_strategy
from felt.common.shoe import deal, deal_many, needs_reshuffle, new_shoe
from felt.state.models import (
    DealerState,
    GamePhase,
    GameState,
    HandState,
    PlayerState,
    PlayerType,
)

logger = logging.getLogger(__name__)

# Seat order at the table: name and controller, left to right
DEFAULT_SEATS = (
    ("Alex", PlayerType.AI),
    ("You", PlayerType.HUMAN),
    ("Sam", PlayerType.AI),
)

SETUP_PHASES = (GamePhase.IDLE, GamePhase.BETTING, GamePhase.ROUND_END)
STAKED_PHASES = (
    GamePhase.DEALING,
    GamePhase.INSURANCE,
    GamePhase.PLAYING,
    GamePhase.DEALER_TURN,
    GamePhase.PAYOUT,
)


def seat_id(position: int) -> str:
    return f"player-{position}"


def _fresh_seat(player: PlayerState) -> PlayerState:
    """Clear a seat's per-round fields, keeping its chips."""
    return replace(
        player,
        hands=(HandState(),),
        active_hand_index=0,
        bets=(0,),
        is_active=False,
        has_insurance=False,
        insurance_bet=0,
        has_acted=False,
        results=(RoundResult.PENDING,),
    )


def _replace_player(state: GameState, index: int, player: PlayerState) -> GameState:
    players = list(state.players)
    players[index] = player
    return replace(state, players=tuple(players))


def _replace_at(items: Tuple[Any, ...], index: int, value: Any) -> Tuple[Any, ...]:
    return items[:index] + (value,) + items[index + 1 :]


class StateTransitionEngine:
    """
    Pure functions for state transitions.

    This class contains static methods that implement game state transitions.
    Each method takes a state and returns a new state, without modifying the
    original.
    """

    # =========================================================================
    # SESSION
    # =========================================================================

    @staticmethod
    def init_game(state: GameState, rng: Optional[random.Random] = None) -> GameState:
        """
        Seat the players and build the first shoe.

        Args:
            state: An idle state carrying the settings and table limits to use
            rng: Random source for the shuffle

        Returns:
            New game state in the betting phase of round 1
        """
        StateTransitionEngine._require_phase(state, "init_game", GamePhase.IDLE)

        starting_chips = state.limits.starting_chips
        players = tuple(
            PlayerState(
                id=seat_id(position),
                name=name,
                type=player_type,
                position=position,
                chips=starting_chips,
            )
            for position, (name, player_type) in enumerate(DEFAULT_SEATS)
        )

        logger.info(
            f"New game: {state.settings.number_of_decks} decks, "
            f"{starting_chips} chips per seat"
        )
        return replace(
            state,
            players=players,
            dealer=DealerState(),
            shoe=new_shoe(state.settings.number_of_decks, rng),
            current_player_index=0,
            phase=GamePhase.BETTING,
            round_number=1,
            stats=SessionStats(highest_chips=starting_chips),
            shuffle_count=state.shuffle_count + 1,
        )

    @staticmethod
    def start_over(state: GameState, rng: Optional[random.Random] = None) -> GameState:
        """
        Reset every seat to the starting chips, clear the stats and reshuffle.

        Raises:
            IllegalAction: If the human is broke and rebuys are not allowed
        """
        StateTransitionEngine._require_phase(state, "start_over", *SETUP_PHASES)
        if state.players and StateTransitionEngine.is_broke(state):
            if not state.settings.allow_rebuy:
                raise IllegalAction("Rebuys are disabled for this table")

        idle = replace(state, phase=GamePhase.IDLE, players=(), dealer=DealerState())
        logger.info("Starting over")
        return StateTransitionEngine.init_game(idle, rng)

    @staticmethod
    def update_settings(
        state: GameState, rng: Optional[random.Random] = None, **changes: Any
    ) -> GameState:
        """
        Apply new rule settings between rounds.

        A change in the number of decks replaces the shoe straight away.

        Raises:
            InvalidConfiguration: If a key is unknown or a value is out of range
        """
        StateTransitionEngine._require_phase(state, "update_settings", *SETUP_PHASES)
        settings = state.settings.merged(**changes)
        new_state = replace(state, settings=settings)

        if (
            settings.number_of_decks != state.settings.number_of_decks
            and state.phase is not GamePhase.IDLE
        ):
            new_state = StateTransitionEngine._reshuffle(new_state, rng)

        logger.debug(f"Settings updated: {changes}")
        return new_state

    # =========================================================================
    # BETTING
    # =========================================================================

    @staticmethod
    def place_bet(state: GameState, player_id: str, amount: int) -> GameState:
        """
        Add chips to a seat's pending bet.

        Args:
            state: Current game state
            player_id: ID of the seat betting
            amount: Chips to add to the pending bet

        Returns:
            New game state with the larger pending bet

        Raises:
            InvalidBet: If the new total is outside the table limits or exceeds the chips
        """
        StateTransitionEngine._require_phase(state, "place_bet", GamePhase.BETTING)
        index, player = StateTransitionEngine._find_player(state, player_id)

        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidBet(f"Bet amount must be a positive whole number, got {amount!r}")

        total = player.bets[0] + amount
        limits = state.limits
        if total < limits.min_bet:
            raise InvalidBet(f"Minimum bet is {limits.min_bet}")
        if total > limits.max_bet:
            raise InvalidBet(f"Maximum bet is {limits.max_bet}")
        if total > player.chips:
            raise InvalidBet(f"{player.name} has only {player.chips} chips")

        logger.debug(f"{player.name} bets {amount} (total {total})")
        return _replace_player(state, index, replace(player, bets=(total,)))

    @staticmethod
    def clear_bet(state: GameState, player_id: str) -> GameState:
        StateTransitionEngine._require_phase(state, "clear_bet", GamePhase.BETTING)
        index, player = StateTransitionEngine._find_player(state, player_id)
        return _replace_player(state, index, replace(player, bets=(0,)))

    @staticmethod
    def start_dealing(state: GameState) -> GameState:
        """
        Close betting: size the AI bets and take every stake off the seats' chips.

        AI seats without a bet are sized by basic strategy; an AI seat that
        cannot cover the minimum bet sits the round out.

        Raises:
            InvalidBet: If the human has not bet at least the minimum
        """
        StateTransitionEngine._require_phase(state, "start_dealing", GamePhase.BETTING)
        limits = state.limits

        human = StateTransitionEngine.human_player(state)
        if human.bets[0] < limits.min_bet:
            raise InvalidBet(f"Place a bet of at least {limits.min_bet} to deal")

        players = []
        for player in state.players:
            bet = player.bets[0]
            if player.is_ai and bet == 0 and player.chips >= limits.min_bet:
                bet = basic_strategy.get_bet_amount(
                    player.chips, limits.min_bet, limits.max_bet, limits.chip_denominations
                )
            if bet > player.chips:
                raise InvalidBet(f"{player.name} has only {player.chips} chips")
            players.append(
                replace(_fresh_seat(player), bets=(bet,), chips=player.chips - bet)
            )

        new_state = replace(
            state,
            players=tuple(players),
            current_player_index=0,
            phase=GamePhase.DEALING,
        )
        decision_logger.log_round_start(
            state.round_number, [p.name for p in new_state.players if p.in_round]
        )
        bets = {p.name: p.bets[0] for p in new_state.players}
        logger.info(f"Round {state.round_number}: bets {bets}")
        return new_state

    # =========================================================================
    # DEALING AND INSURANCE
    # =========================================================================

    @staticmethod
    def deal_initial_cards(state: GameState) -> GameState:
        """
        Deal the opening cards round-robin: one to each seat, the dealer's
        upcard, a second to each seat, then the dealer's hole card face down.

        Returns:
            New game state in the insurance phase when the dealer shows an
            ace, otherwise in the playing phase

        Raises:
            InsufficientCards: If the shoe cannot cover the deal
        """
        StateTransitionEngine._require_phase(
            state, "deal_initial_cards", GamePhase.DEALING
        )
        seats = [i for i, p in enumerate(state.players) if p.in_round]
        cards, shoe = deal_many(state.shoe, 2 * len(seats) + 2)
        dealt = iter(cards)

        players = list(state.players)
        dealer_hand = state.dealer.hand
        for hole in (False, True):
            for i in seats:
                hand = players[i].hands[0].add_card(next(dealt))
                players[i] = replace(players[i], hands=(hand,))
            dealer_hand = dealer_hand.add_card(next(dealt), face_up=not hole)

        new_state = replace(
            state,
            players=tuple(players),
            dealer=replace(state.dealer, hand=dealer_hand, hole_card_revealed=False),
            shoe=shoe,
        )

        if should_offer_insurance(new_state.dealer):
            logger.debug("Dealer shows an ace, offering insurance")
            return replace(new_state, phase=GamePhase.INSURANCE)
        return StateTransitionEngine._begin_play(new_state)

    @staticmethod
    def buy_insurance(state: GameState, player_id: str) -> GameState:
        """
        Record the human's insurance purchase and start play.

        Raises:
            IllegalAction: If the seat is not the human's or cannot afford insurance
        """
        StateTransitionEngine._require_phase(state, "buy_insurance", GamePhase.INSURANCE)
        index, player = StateTransitionEngine._insurance_seat(state, player_id)
        if not can_buy_insurance(player, state.dealer):
            raise IllegalAction(f"{player.name} cannot buy insurance")

        cost = insurance_cost(player.bets[0])
        player = replace(
            player, chips=player.chips - cost, has_insurance=True, insurance_bet=cost
        )
        logger.debug(f"{player.name} buys insurance for {cost}")
        return StateTransitionEngine._close_insurance(
            _replace_player(state, index, player)
        )

    @staticmethod
    def decline_insurance(state: GameState, player_id: str) -> GameState:
        StateTransitionEngine._require_phase(
            state, "decline_insurance", GamePhase.INSURANCE
        )
        StateTransitionEngine._insurance_seat(state, player_id)
        return StateTransitionEngine._close_insurance(state)

    # =========================================================================
    # PLAYER ACTIONS
    # =========================================================================

    @staticmethod
    def hit(state: GameState, player_id: str) -> GameState:
        """Draw a card to the active hand; a bust or 21 ends the hand."""
        new_state = StateTransitionEngine._hit(state, player_id)
        return StateTransitionEngine._play_ai_turns(new_state)

    @staticmethod
    def stand(state: GameState, player_id: str) -> GameState:
        new_state = StateTransitionEngine._stand(state, player_id)
        return StateTransitionEngine._play_ai_turns(new_state)

    @staticmethod
    def double_down(state: GameState, player_id: str) -> GameState:
        """Double the bet on the active hand, draw exactly one card and end the hand."""
        new_state = StateTransitionEngine._double_down(state, player_id)
        return StateTransitionEngine._play_ai_turns(new_state)

    @staticmethod
    def split(state: GameState, player_id: str) -> GameState:
        """
        Split the active pair into two hands, each dealt one more card.

        The new hand carries the same bet and is played after the current
        one; the current hand stays active.
        """
        new_state = StateTransitionEngine._split(state, player_id)
        return StateTransitionEngine._play_ai_turns(new_state)

    @staticmethod
    def surrender(state: GameState, player_id: str) -> GameState:
        """Give up the active hand for half its bet back at settlement."""
        new_state = StateTransitionEngine._surrender(state, player_id)
        return StateTransitionEngine._play_ai_turns(new_state)

    # =========================================================================
    # DEALER AND SETTLEMENT
    # =========================================================================

    @staticmethod
    def play_dealer_turn(state: GameState) -> GameState:
        """
        Reveal the hole card, draw to the dealer's policy and settle every hand.

        Returns:
            New game state in the round-end phase
        """
        StateTransitionEngine._require_phase(
            state, "play_dealer_turn", GamePhase.DEALER_TURN
        )
        hand = state.dealer.hand.reveal()
        shoe = state.shoe
        while dealer_should_hit(hand, state.settings):
            card, shoe = deal(shoe)
            hand = hand.add_card(card)

        logger.debug(f"Dealer finishes with {hand.score}")
        new_state = replace(
            state,
            dealer=replace(state.dealer, hand=hand, hole_card_revealed=True),
            shoe=shoe,
            phase=GamePhase.PAYOUT,
        )
        return StateTransitionEngine._settle(new_state)

    @staticmethod
    def next_round(state: GameState, rng: Optional[random.Random] = None) -> GameState:
        """
        Clear the table for the next round, keeping chips and stats.

        The shoe is replaced when it has fallen below the reshuffle threshold.
        """
        StateTransitionEngine._require_phase(state, "next_round", GamePhase.ROUND_END)
        new_state = replace(
            state,
            players=tuple(_fresh_seat(p) for p in state.players),
            dealer=DealerState(),
            current_player_index=0,
            phase=GamePhase.BETTING,
            round_number=state.round_number + 1,
        )
        if needs_reshuffle(state.shoe, state.settings.number_of_decks):
            new_state = StateTransitionEngine._reshuffle(new_state, rng)
        return new_state

    # =========================================================================
    # QUERIES
    # =========================================================================

    @staticmethod
    def available_actions(state: GameState, player_id: str) -> List[Action]:
        """Legal actions for a seat; empty unless it is that seat's turn."""
        player = state.current_player
        if state.phase is not GamePhase.PLAYING or player is None:
            return []
        if player.id != player_id:
            return []
        return legal_actions(player, state.settings)

    @staticmethod
    def human_player(state: GameState) -> PlayerState:
        human = state.human
        if human is None:
            raise IllegalAction("No human seat at the table")
        return human

    @staticmethod
    def is_broke(state: GameState) -> bool:
        """Whether the human cannot cover the minimum bet and has nothing staked."""
        human = StateTransitionEngine.human_player(state)
        if state.phase in STAKED_PHASES and human.in_round:
            return False
        return human.chips < state.limits.min_bet

    # =========================================================================
    # INTERNALS
    # =========================================================================

    @staticmethod
    def _require_phase(state: GameState, command: str, *phases: GamePhase) -> None:
        if state.phase not in phases:
            raise InvalidPhaseTransition(command, state.phase, phases)

    @staticmethod
    def _find_player(state: GameState, player_id: str) -> Tuple[int, PlayerState]:
        for i, player in enumerate(state.players):
            if player.id == player_id:
                return i, player
        raise IllegalAction(f"Unknown player: {player_id}")

    @staticmethod
    def _require_turn(
        state: GameState, player_id: str, command: str
    ) -> Tuple[int, PlayerState, HandState]:
        StateTransitionEngine._require_phase(state, command, GamePhase.PLAYING)
        index, player = StateTransitionEngine._find_player(state, player_id)
        if index != state.current_player_index:
            raise IllegalAction(f"It is not {player.name}'s turn")
        return index, player, player.hands[player.active_hand_index]

    @staticmethod
    def _insurance_seat(state: GameState, player_id: str) -> Tuple[int, PlayerState]:
        index, player = StateTransitionEngine._find_player(state, player_id)
        if not player.is_human:
            raise IllegalAction("Insurance decisions for AI seats are automatic")
        return index, player

    @staticmethod
    def _close_insurance(state: GameState) -> GameState:
        """AI seats make their insurance decision, then play begins."""
        for i, player in enumerate(state.players):
            if not player.is_ai or not player.in_round:
                continue
            if basic_strategy.decide_insurance() and can_buy_insurance(player, state.dealer):
                cost = insurance_cost(player.bets[0])
                state = _replace_player(
                    state,
                    i,
                    replace(
                        player,
                        chips=player.chips - cost,
                        has_insurance=True,
                        insurance_bet=cost,
                    ),
                )
        return StateTransitionEngine._begin_play(state)

    @staticmethod
    def _begin_play(state: GameState) -> GameState:
        new_state = StateTransitionEngine._activate_seat(
            replace(state, phase=GamePhase.PLAYING), 0
        )
        return StateTransitionEngine._play_ai_turns(new_state)

    @staticmethod
    def _activate_seat(state: GameState, start: int) -> GameState:
        """
        Hand the turn to the first seat at or after `start` that holds a stake.

        Past the last seat the round moves to the dealer's turn.
        """
        index = start
        while index < len(state.players) and not state.players[index].in_round:
            index += 1

        players = tuple(
            replace(p, is_active=i == index, has_acted=False if i == index else p.has_acted)
            for i, p in enumerate(state.players)
        )
        if index >= len(state.players):
            logger.debug("All seats done, dealer's turn")
            return replace(
                state,
                players=players,
                current_player_index=len(state.players),
                phase=GamePhase.DEALER_TURN,
            )
        return replace(state, players=players, current_player_index=index)

    @staticmethod
    def _advance_to_next_hand(state: GameState) -> GameState:
        """
        Advance to the seat's next split hand or, after its last hand, to the next seat.
        """
        index = state.current_player_index
        player = state.players[index]

        if player.active_hand_index < len(player.hands) - 1:
            player = replace(
                player, active_hand_index=player.active_hand_index + 1, has_acted=False
            )
            return _replace_player(state, index, player)

        return StateTransitionEngine._activate_seat(state, index + 1)

    @staticmethod
    def _play_ai_turns(state: GameState) -> GameState:
        """Play AI seats until the turn reaches the human or the dealer."""
        while state.phase is GamePhase.PLAYING and state.current_player.is_ai:
            state = StateTransitionEngine._apply_ai_decision(state)
        return state

    @staticmethod
    def _apply_ai_decision(state: GameState) -> GameState:
        player = state.current_player
        hand = player.hands[player.active_hand_index]
        upcard = state.dealer.upcard

        action = basic_strategy.decide_action(
            hand,
            upcard.value if upcard else None,
            can_double_down(hand, player, state.settings),
            can_split(hand, player),
            can_surrender(hand, player, state.settings),
            player_name=player.name,
        )
        if action is Action.SPLIT:
            return StateTransitionEngine._split(state, player.id)
        if action is Action.DOUBLE:
            return StateTransitionEngine._double_down(state, player.id)
        if action is Action.SURRENDER:
            return StateTransitionEngine._surrender(state, player.id)
        if action is Action.HIT:
            return StateTransitionEngine._hit(state, player.id)
        return StateTransitionEngine._stand(state, player.id)

    @staticmethod
    def _hit(state: GameState, player_id: str) -> GameState:
        index, player, hand = StateTransitionEngine._require_turn(state, player_id, "hit")
        if not can_hit(hand):
            raise IllegalAction(f"{player.name} cannot hit on {hand.score}")

        card, shoe = deal(state.shoe)
        hand = hand.add_card(card)
        player = replace(
            player,
            hands=_replace_at(player.hands, player.active_hand_index, hand),
            has_acted=True,
        )
        new_state = replace(_replace_player(state, index, player), shoe=shoe)
        logger.debug(f"{player.name} hits: {card} -> {hand.score}")

        if hand.is_busted or hand.score == 21:
            return StateTransitionEngine._advance_to_next_hand(new_state)
        return new_state

    @staticmethod
    def _stand(state: GameState, player_id: str) -> GameState:
        index, player, hand = StateTransitionEngine._require_turn(state, player_id, "stand")
        if not can_stand(hand):
            raise IllegalAction(f"{player.name} has no cards to stand on")

        logger.debug(f"{player.name} stands on {hand.score}")
        new_state = _replace_player(state, index, replace(player, has_acted=True))
        return StateTransitionEngine._advance_to_next_hand(new_state)

    @staticmethod
    def _double_down(state: GameState, player_id: str) -> GameState:
        index, player, hand = StateTransitionEngine._require_turn(
            state, player_id, "double_down"
        )
        if not can_double_down(hand, player, state.settings):
            raise IllegalAction(f"{player.name} cannot double down")

        bet = active_bet(player)
        card, shoe = deal(state.shoe)
        hand = hand.add_card(card)
        i = player.active_hand_index
        player = replace(
            player,
            hands=_replace_at(player.hands, i, hand),
            bets=_replace_at(player.bets, i, bet * 2),
            chips=player.chips - bet,
            has_acted=True,
        )
        logger.debug(f"{player.name} doubles to {bet * 2}: {card} -> {hand.score}")
        new_state = replace(_replace_player(state, index, player), shoe=shoe)
        return StateTransitionEngine._advance_to_next_hand(new_state)

    @staticmethod
    def _split(state: GameState, player_id: str) -> GameState:
        index, player, hand = StateTransitionEngine._require_turn(state, player_id, "split")
        if not can_split(hand, player):
            raise IllegalAction(f"{player.name} cannot split")

        bet = active_bet(player)
        (first_card, second_card), shoe = deal_many(state.shoe, 2)
        first = HandState(cards=(hand.cards[0],), is_split=True).add_card(first_card)
        second = HandState(cards=(hand.cards[1],), is_split=True).add_card(second_card)

        i = player.active_hand_index
        player = replace(
            player,
            hands=player.hands[:i] + (first, second) + player.hands[i + 1 :],
            bets=player.bets[: i + 1] + (bet,) + player.bets[i + 1 :],
            results=player.results[: i + 1] + (RoundResult.PENDING,) + player.results[i + 1 :],
            chips=player.chips - bet,
            has_acted=False,
        )
        logger.debug(f"{player.name} splits into {len(player.hands)} hands")
        return replace(_replace_player(state, index, player), shoe=shoe)

    @staticmethod
    def _surrender(state: GameState, player_id: str) -> GameState:
        index, player, hand = StateTransitionEngine._require_turn(
            state, player_id, "surrender"
        )
        if not can_surrender(hand, player, state.settings):
            raise IllegalAction(f"{player.name} cannot surrender")

        i = player.active_hand_index
        player = replace(
            player,
            hands=_replace_at(player.hands, i, replace(hand, is_surrendered=True)),
            has_acted=True,
        )
        logger.debug(f"{player.name} surrenders")
        new_state = _replace_player(state, index, player)
        return StateTransitionEngine._advance_to_next_hand(new_state)

    @staticmethod
    def _settle(state: GameState) -> GameState:
        """Resolve every staked hand, pay the seats and record the human's stats."""
        dealer_hand = state.dealer.hand
        settings = state.settings
        stats = state.stats
        players = []
        outcomes = {}

        for player in state.players:
            if not player.in_round:
                players.append(player)
                continue

            results = tuple(
                determine_winner(hand, dealer_hand, hand.is_surrendered)
                for hand in player.hands
            )
            chips = settle_chips(
                player, calculate_total_payout(player, dealer_hand, settings)
            )

            if player.is_human:
                for result, bet in zip(results, player.bets):
                    stats = stats.record_hand(
                        result, calculate_payout(result, bet, settings)
                    )
                stats = stats.record_chips(chips)

            outcomes[player.name] = f"{[r.value for r in results]} -> {chips} chips"
            players.append(
                replace(player, results=results, chips=chips, is_active=False)
            )

        decision_logger.log_round_end(outcomes)
        logger.info(f"Round {state.round_number} settled: {outcomes}")
        return replace(
            state, players=tuple(players), stats=stats, phase=GamePhase.ROUND_END
        )

    @staticmethod
    def _reshuffle(state: GameState, rng: Optional[random.Random]) -> GameState:
        logger.info(f"Shuffling a new {state.settings.number_of_decks}-deck shoe")
        return replace(
            state,
            shoe=new_shoe(state.settings.number_of_decks, rng),
            shuffle_count=state.shuffle_count + 1,
        )


"""
Headless simulation of a blackjack session.

Plays the human seat with basic strategy at the minimum bet for a number of
rounds and reports the session statistics together with a summary of the
per-round results.

Usage:
    felt-sim --rounds 1000 --decks 6 --seed 7
    python -m felt.simulate --payout 6:5 --stand-soft-17
"""

import argparse
import logging
import time
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from scipy import stats

from felt.blackjack.action import Action
from felt.blackjack.decision_logger import decision_logger
from felt.blackjack.rules import BlackjackPayout
from felt.blackjack.strategy import BasicStrategy
from felt.engine import BlackjackEngine
from felt.events import EventEmitter
from felt.state import GamePhase

logger = logging.getLogger(__name__)


def play_round(engine: BlackjackEngine, strategy: BasicStrategy) -> int:
    """
    Play one round for the human seat at the minimum bet.

    Returns:
        The human's net chip change for the round
    """
    human_id = engine.human.id
    chips_before = engine.human.chips

    engine.place_bet(human_id, engine.state.limits.min_bet)
    engine.start_dealing()
    engine.deal_initial_cards()

    if engine.state.phase is GamePhase.INSURANCE:
        if strategy.decide_insurance():
            engine.buy_insurance(human_id)
        else:
            engine.decline_insurance(human_id)

    while engine.state.phase is GamePhase.PLAYING:
        player = engine.human
        actions = engine.available_actions(human_id)
        upcard = engine.state.dealer.upcard
        action = strategy.decide_action(
            player.current_hand,
            upcard.value if upcard else None,
            Action.DOUBLE in actions,
            Action.SPLIT in actions,
            Action.SURRENDER in actions,
            player_name=player.name,
        )
        engine.act(human_id, action)

    engine.play_dealer_turn()
    net = engine.human.chips - chips_before
    engine.next_round()
    return net


def summarize(nets: Sequence[int], bet: int, confidence: float = 0.95) -> Dict[str, Any]:
    """
    Summarize per-round results.

    Args:
        nets: Net chip change of each round
        bet: Base bet, used to express the mean as a return per unit bet
        confidence: Confidence level for the interval on the mean

    Returns:
        Dictionary of rounds, total, mean, std, min, max, return per bet and
        the confidence interval on the mean
    """
    values = np.asarray(nets, dtype=float)
    if values.size == 0:
        return {"rounds": 0}

    mean = float(np.mean(values))
    summary = {
        "rounds": int(values.size),
        "total": float(np.sum(values)),
        "mean": mean,
        "std": float(np.std(values)),
        "min": float(np.min(values)),
        "max": float(np.max(values)),
        "return_per_bet": mean / bet,
    }

    if values.size > 1 and np.std(values) > 0:
        margin = stats.sem(values) * stats.t.ppf((1 + confidence) / 2, values.size - 1)
        summary["confidence_interval"] = (mean - float(margin), mean + float(margin))
    else:
        summary["confidence_interval"] = (mean, mean)
    return summary


def run_simulation(rounds: int, config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Simulate up to `rounds` rounds; stops early once the human is broke.

    Returns:
        Dictionary with the per-round nets, session stats and summary
    """
    engine = BlackjackEngine(config, emitter=EventEmitter())
    strategy = BasicStrategy()
    engine.init_game()

    nets: List[int] = []
    for _ in range(rounds):
        if engine.is_broke():
            logger.info(f"Out of chips after {len(nets)} rounds")
            break
        nets.append(play_round(engine, strategy))

    return {
        "nets": nets,
        "stats": engine.state.stats.report(),
        "chips": engine.human.chips,
        "shuffles": engine.state.shuffle_count,
        "summary": summarize(nets, engine.state.limits.min_bet),
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Simulate a blackjack session.")
    parser.add_argument("--rounds", type=int, default=1000, help="Rounds to play")
    parser.add_argument("--decks", type=int, default=6, help="Decks in the shoe (1-8)")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the shuffle")
    parser.add_argument(
        "--stand-soft-17",
        action="store_true",
        help="Dealer stands on soft 17 (default: hits)",
    )
    parser.add_argument(
        "--payout",
        choices=[p.value for p in BlackjackPayout],
        default=BlackjackPayout.THREE_TO_TWO.value,
        help="Blackjack payout",
    )
    parser.add_argument(
        "--no-surrender", action="store_true", help="Disable late surrender"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main function to run the simulation.
    """
    args = build_parser().parse_args(argv)

    level = getattr(logging, args.log_level)
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    decision_logger.set_level(level)

    config = {
        "seed": args.seed,
        "settings": {
            "number_of_decks": args.decks,
            "dealer_hits_soft_17": not args.stand_soft_17,
            "blackjack_pays": args.payout,
            "allow_surrender": not args.no_surrender,
        },
    }

    start_time = time.time()
    result = run_simulation(args.rounds, config)
    duration = time.time() - start_time

    session = result["stats"]
    summary = result["summary"]

    print("Simulation completed.")
    print(f"Rounds played: {summary['rounds']:,}")
    print(f"Hands played: {session['hands_played']:,}")
    print(f"Hands won: {session['hands_won']:,}")
    print(f"Hands lost: {session['hands_lost']:,}")
    print(f"Hands pushed: {session['hands_pushed']:,}")
    print(f"Blackjacks: {session['blackjacks']:,}")
    print(f"Final chips: {result['chips']:,}")
    print(f"Highest chips: {session['highest_chips']:,}")
    print(f"Shoes shuffled: {result['shuffles']:,}")

    if summary["rounds"]:
        low, high = summary["confidence_interval"]
        print(f"\nNet per round: {summary['mean']:+.2f} (std {summary['std']:.2f})")
        print(f"95% interval on the mean: [{low:+.2f}, {high:+.2f}]")
        print(f"Worst round: {summary['min']:+.0f}, best round: {summary['max']:+.0f}")
        print(f"Return per unit bet: {summary['return_per_bet'] * 100:+.2f}%")

    rounds_per_second = summary["rounds"] / duration if duration > 0 else 0
    print(f"\nDuration of simulation: {duration:.2f} seconds")
    print(f"Rounds simulated per second: {rounds_per_second:,.2f}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

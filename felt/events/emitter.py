"""
Event system for the felt engine.

The engine facade announces everything that happens at the table (bets,
cards, decisions, results, shuffles, errors) as an `EngineEventType` plus a
plain data dictionary. Listeners subscribe per event type, or to every event
with `on_any`, and run in priority order; a listener that raises is logged
and skipped so one broken view cannot stall a round.

Event types are keyed by their enum name, so ``"HAND_RESULT"`` and
``EngineEventType.HAND_RESULT`` address the same listeners.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

logger = logging.getLogger("felt.events")

EventKey = Union[str, Enum]


class EventPriority(Enum):
    """Priority levels for event handlers; higher values run first."""

    LOW = 0
    NORMAL = 1
    HIGH = 2
    CRITICAL = 3


class EngineEventType(Enum):
    """
    Event types emitted by the blackjack engine.
    """

    # Game lifecycle
    GAME_STARTED = "game_started"
    GAME_RESET = "game_reset"
    ROUND_STARTED = "round_started"
    ROUND_ENDED = "round_ended"

    # Seats
    PLAYER_BET = "player_bet"
    BET_CLEARED = "bet_cleared"
    PLAYER_DECISION_NEEDED = "player_decision_needed"
    PLAYER_ACTION = "player_action"

    # Cards
    CARDS_DEALT = "cards_dealt"
    CARD_REVEALED = "card_revealed"

    # Hands
    HAND_SPLIT = "hand_split"
    HAND_BUSTED = "hand_busted"
    HAND_RESULT = "hand_result"

    DEALER_ACTION = "dealer_action"

    # Insurance
    INSURANCE_OFFERED = "insurance_offered"
    INSURANCE_DECISION = "insurance_decision"

    # Chips
    BANKROLL_UPDATED = "bankroll_updated"
    PLAYER_BROKE = "player_broke"

    # Shoe and configuration
    SHUFFLE = "shuffle"
    SETTINGS_CHANGED = "settings_changed"

    ERROR = "error"

    # Presentation
    UI_UPDATE_NEEDED = "ui_update_needed"


def event_key(event_type: EventKey) -> str:
    """Normalise an event type to the name listeners are stored under."""
    if isinstance(event_type, Enum):
        return event_type.name
    return event_type


@dataclass(frozen=True)
class _Subscription:
    callback: Callable
    priority: int
    once: bool = False


def _insert(subscriptions: List[_Subscription], subscription: _Subscription) -> None:
    # Ahead of the first lower priority; equal priorities keep subscription order
    for i, existing in enumerate(subscriptions):
        if existing.priority < subscription.priority:
            subscriptions.insert(i, subscription)
            return
    subscriptions.append(subscription)


def _discard(subscriptions: List[_Subscription], subscription: _Subscription) -> None:
    try:
        subscriptions.remove(subscription)
    except ValueError:
        pass


class EventEmitter:
    """
    Publish/subscribe hub for engine events.

    - Per-type listeners receive the event data: ``callback(data)``
    - Global listeners receive the type with it: ``callback((name, data))``
    - `once` listeners are removed before their first call
    - Registration is guarded by a re-entrant lock; callbacks run outside it
    """

    def __init__(self):
        self._listeners: Dict[str, List[_Subscription]] = {}
        self._global_listeners: List[_Subscription] = []
        self._listener_lock = threading.RLock()

    def on(
        self,
        event_type: EventKey,
        callback: Callable,
        priority: EventPriority = EventPriority.NORMAL,
    ) -> Callable[[], None]:
        """
        Subscribe to an event type.

        Returns:
            Function that removes this subscription
        """
        return self._subscribe(event_key(event_type), callback, priority, once=False)

    def once(
        self,
        event_type: EventKey,
        callback: Callable,
        priority: EventPriority = EventPriority.NORMAL,
    ) -> Callable[[], None]:
        """Subscribe to the next occurrence of an event type only."""
        return self._subscribe(event_key(event_type), callback, priority, once=True)

    def on_any(
        self, callback: Callable, priority: EventPriority = EventPriority.NORMAL
    ) -> Callable[[], None]:
        """Subscribe to every event; the callback gets ``(event_name, data)``."""
        return self._subscribe(None, callback, priority, once=False)

    def emit(self, event_type: EventKey, data: Dict[str, Any]) -> int:
        """
        Deliver an event to its listeners, then to the global listeners.

        Returns:
            Number of callbacks invoked
        """
        name = event_key(event_type)

        with self._listener_lock:
            targeted = list(self._listeners.get(name, ()))
            for subscription in targeted:
                if subscription.once:
                    _discard(self._listeners[name], subscription)
            calls = [(s.callback, data) for s in targeted]
            calls += [(s.callback, (name, data)) for s in self._global_listeners]

        for callback, payload in calls:
            try:
                callback(payload)
            except Exception as e:
                logger.error(f"Error in event handler for {name}: {e}", exc_info=True)
        return len(calls)

    def listener_count(self, event_type: Optional[EventKey] = None) -> int:
        """Listeners for an event type, or global listeners when omitted."""
        with self._listener_lock:
            if event_type is None:
                return len(self._global_listeners)
            return len(self._listeners.get(event_key(event_type), ()))

    def remove_all_listeners(self, event_type: Optional[EventKey] = None) -> None:
        """Remove the listeners of one event type, or every listener when omitted."""
        with self._listener_lock:
            if event_type is None:
                self._listeners.clear()
                self._global_listeners.clear()
            else:
                self._listeners.pop(event_key(event_type), None)

    def _subscribe(
        self,
        name: Optional[str],
        callback: Callable,
        priority: EventPriority,
        once: bool,
    ) -> Callable[[], None]:
        subscription = _Subscription(callback, priority.value, once)
        with self._listener_lock:
            if name is None:
                bucket = self._global_listeners
            else:
                bucket = self._listeners.setdefault(name, [])
            _insert(bucket, subscription)

        def unsubscribe():
            with self._listener_lock:
                _discard(bucket, subscription)

        return unsubscribe


class EventBus:
    """
    Process-wide default emitter.

    Engines created without an explicit emitter publish here.
    """

    _instance = None
    _lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> EventEmitter:
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = EventEmitter()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the shared emitter and every listener attached to it."""
        with cls._lock:
            cls._instance = None

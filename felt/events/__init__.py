"""
Event system for the felt engine.

This package provides the event emitter the engine facade publishes its
round events through.
"""

from felt.events.emitter import (
    EventEmitter,
    EventBus,
    EventPriority,
    EngineEventType,
)

__all__ = ["EventEmitter", "EventBus", "EventPriority", "EngineEventType"]

"""
Core engine for the felt package.

This package provides the blackjack engine facade that owns a table's state
and applies commands to it.
"""

from felt.engine.blackjack import BlackjackEngine

__all__ = ["BlackjackEngine"]

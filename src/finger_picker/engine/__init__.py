"""Selection engine - the timed random-pick state machine.

Contains:
- SelectionEngine: dwell / cycling / hold / fade / cooldown state machine
"""

from .selection_engine import SelectionEngine, SelectionState

__all__ = ['SelectionEngine', 'SelectionState']

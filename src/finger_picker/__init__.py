"""
finger-picker: Multi-finger random picker

Any number of fingers are placed on a surface; after a dwell delay one of
them is picked uniformly at random, highlighted, held, faded out, and the
cycle restarts while fingers remain down.

Architecture:
    input events → TouchRegistry → SelectionEngine → RenderState → renderer

The package is the decision core only. It never draws and never reads a
platform input device: a host feeds it TouchStart/TouchMove/TouchEnd events
and polls one RenderState per frame (touch positions, the highlighted id and
its 0-1 intensity).

Version: 1.0.0
"""

__version__ = "1.0.0"

from .config import PickerConfig, load_config
from .interfaces.render_state import Phase, Position, RenderState, SelectionView, TouchView
from .interfaces.input_events import TouchStart, TouchMove, TouchEnd
from .registry.touch_registry import Touch, TouchRegistry
from .engine.selection_engine import SelectionEngine, SelectionState
from .timing.scheduler import VirtualScheduler, MonotonicScheduler
from .picker import TouchPicker

__all__ = [
    "PickerConfig",
    "load_config",
    "Phase",
    "Position",
    "RenderState",
    "SelectionView",
    "TouchView",
    "TouchStart",
    "TouchMove",
    "TouchEnd",
    "Touch",
    "TouchRegistry",
    "SelectionEngine",
    "SelectionState",
    "VirtualScheduler",
    "MonotonicScheduler",
    "TouchPicker",
    "__version__",
]

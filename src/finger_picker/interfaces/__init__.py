"""Interface definitions: input events and render state."""

from .render_state import Phase, Position, RenderState, SelectionView, TouchView, HIGHLIGHT_PHASES
from .input_events import TouchStart, TouchMove, TouchEnd, TouchEvent, event_from_dict

__all__ = [
    'Phase', 'Position', 'RenderState', 'SelectionView', 'TouchView', 'HIGHLIGHT_PHASES',
    'TouchStart', 'TouchMove', 'TouchEnd', 'TouchEvent', 'event_from_dict',
]

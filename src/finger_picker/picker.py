"""
TouchPicker - host-facing facade.

Wires a TouchRegistry and a SelectionEngine to one scheduler and exposes the
three boundaries a host needs:

    input   handle_events([TouchStart(...), TouchEnd(...)])
    render  tick() / render_state()  -> RenderState once per frame
    reset   reset()

Typical live loop:

    picker = TouchPicker(config)                  # MonotonicScheduler
    while running:
        picker.handle_events(translate(platform_events()))
        draw(picker.tick())
"""

from typing import Hashable, Iterable, List, Optional
import logging

import numpy as np

from .config import PickerConfig
from .engine.selection_engine import SelectionEngine
from .interfaces.input_events import TouchEnd, TouchEvent, TouchMove, TouchStart
from .interfaces.render_state import HIGHLIGHT_PHASES, RenderState, SelectionView, TouchView
from .registry.touch_registry import TouchRegistry
from .timing.scheduler import MonotonicScheduler, Scheduler

logger = logging.getLogger('finger-picker.picker')


class TouchPicker:
    """Registry + engine + scheduler behind the input/render/reset boundaries."""

    def __init__(
        self,
        config: Optional[PickerConfig] = None,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[np.random.Generator] = None
    ):
        self.config = config or PickerConfig()
        self.scheduler = scheduler or MonotonicScheduler()
        self.registry = TouchRegistry(stale_threshold_ms=self.config.stale_touch_threshold_ms)
        self.engine = SelectionEngine(self.registry, self.config, self.scheduler, rng=rng)
        self.frames = 0

    # --- input boundary ---

    def handle_event(self, event: TouchEvent) -> None:
        self.handle_events([event])

    def handle_events(self, events: Iterable[TouchEvent]) -> None:
        """
        Apply one batch of input events.

        All registry mutations of the batch happen before the engine
        evaluates any resulting transition.
        """
        now = self.scheduler.now()
        with self.registry.batch():
            for event in events:
                if isinstance(event, TouchStart):
                    self.registry.upsert(event.touch_id, event.position, now)
                elif isinstance(event, TouchMove):
                    self.registry.move(event.touch_id, event.position, now)
                elif isinstance(event, TouchEnd):
                    self.registry.remove(event.touch_id)
                else:
                    logger.debug(f"Ignoring unknown input event: {event!r}")

    # --- render boundary ---

    def tick(self) -> RenderState:
        """Advance one frame: fire due timers, prune stale touches, snapshot."""
        if isinstance(self.scheduler, MonotonicScheduler):
            self.scheduler.run_due()
        if self.config.staleness_enabled:
            self.registry.prune_stale(self.scheduler.now())
        self.frames += 1
        return self.render_state()

    def render_state(self) -> RenderState:
        now = self.scheduler.now()
        touches = [
            TouchView(touch_id=touch_id, position=position)
            for touch_id, position in self.registry.snapshot().items()
        ]

        selection = None
        state = self.engine.selection_state(now)
        if state.phase in HIGHLIGHT_PHASES and state.selected_id in self.registry:
            selection = SelectionView(touch_id=state.selected_id, intensity=state.intensity)

        return RenderState(
            phase=state.phase,
            touches=touches,
            selection=selection,
            timestamp_ms=now,
        )

    # --- reset boundary ---

    def reset(self) -> List[Hashable]:
        """
        Return the engine to IDLE.

        Also empties the registry when `reset_clears_touches` is set;
        returns the ids removed that way.
        """
        removed: List[Hashable] = []
        if self.config.reset_clears_touches:
            removed = self.registry.clear()
        self.engine.reset()
        logger.info(f"Picker reset ({len(removed)} touches cleared)")
        return removed

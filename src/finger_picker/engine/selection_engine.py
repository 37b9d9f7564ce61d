#!/usr/bin/env python3
"""
Selection Engine - the timed random-pick state machine.

    IDLE ──first touch──▶ ARMED ──dwell──▶ [CYCLING] ──steps──▶ SELECTED
      ▲                     ▲                                      │ hold
      │                     └──────[COOLDOWN]◀──fade complete── FADING
      └──── registry empty / reset ───────────────────────────────┘

Rules:
    - Any departure while ARMED or CYCLING re-arms with a fresh dwell, so the
      pick never favours an earlier snapshot of participants.
    - The pick is uniform over the ids present at the instant of choice.
    - If the highlighted touch departs, the highlight is dropped at once and
      the engine re-arms (or idles when nobody is left).
    - Exactly one phase-advance timer may be pending. Every transition goes
      through _enter(), which cancels it before anything new is scheduled.

The engine never draws and never mutates the registry. Intensity is computed
on demand from the phase start time (see timing.intensity).
"""

from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Dict, Hashable, Optional, Tuple
import logging

import numpy as np

from ..config import PickerConfig
from ..interfaces.render_state import Phase, HIGHLIGHT_PHASES
from ..registry.touch_registry import RegistryListener, TouchRegistry
from ..timing.intensity import fade_duration_ms, intensity as intensity_at
from ..timing.scheduler import MonotonicScheduler, Scheduler, TimerHandle

logger = logging.getLogger('finger-picker.engine')


@dataclass(frozen=True)
class SelectionState:
    """Engine phase plus derived render parameters at one instant."""
    phase: Phase
    selected_id: Optional[Hashable]
    intensity: float
    phase_started_at: float


class SelectionEngine(RegistryListener):
    """
    Drives dwell -> (cycling) -> selected -> fading -> (cooldown) cycles.

    Usage:
        registry = TouchRegistry()
        scheduler = VirtualScheduler()
        engine = SelectionEngine(registry, PickerConfig(), scheduler)

        registry.upsert(1, Position(100, 100), scheduler.now())
        scheduler.advance(2000)
        assert engine.phase == Phase.SELECTED
    """

    def __init__(
        self,
        registry: TouchRegistry,
        config: Optional[PickerConfig] = None,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[np.random.Generator] = None
    ):
        """
        Args:
            registry: Touch registry to observe
            config: Timing configuration (defaults if None)
            scheduler: Clock and timer source (wall clock if None)
            rng: Random generator for the pick (seeded from config if None)
        """
        self.registry = registry
        self.config = config or PickerConfig()
        self.scheduler = scheduler or MonotonicScheduler()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)

        self.phase = Phase.IDLE
        self.selected_id: Optional[Hashable] = None
        self.phase_started_at = self.scheduler.now()

        self._timer: Optional[TimerHandle] = None
        self._cycle_step = 0

        self.stats: Dict[str, int] = {
            'cycles_started': 0,
            'selections': 0,
            'aborts': 0,
            'resets': 0,
        }

        registry.add_listener(self)
        if registry:
            self._arm()

    # =========================================================================
    # Read access
    # =========================================================================

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None and self._timer.active

    def intensity(self, now: Optional[float] = None) -> float:
        """Intensity of the highlighted touch at `now` (defaults to the clock)."""
        if now is None:
            now = self.scheduler.now()
        return intensity_at(self.phase, self.phase_started_at, now, self.config)

    def selection_state(self, now: Optional[float] = None) -> SelectionState:
        return SelectionState(
            phase=self.phase,
            selected_id=self.selected_id,
            intensity=self.intensity(now),
            phase_started_at=self.phase_started_at,
        )

    # =========================================================================
    # Transitions
    # =========================================================================

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule(self, delay_ms: float, callback: Callable[[], None]) -> None:
        self._cancel_timer()
        self._timer = self.scheduler.call_later(delay_ms, partial(self._on_timer, callback))

    def _on_timer(self, callback: Callable[[], None]) -> None:
        self._timer = None
        callback()

    def _enter(self, phase: Phase, selected_id: Optional[Hashable] = None, reason: str = "") -> None:
        self._cancel_timer()
        previous = self.phase
        self.phase = phase
        self.selected_id = selected_id if phase in HIGHLIGHT_PHASES else None
        self.phase_started_at = self.scheduler.now()

        if previous != phase:
            detail = f" ({reason})" if reason else ""
            logger.info(f"Selection: {previous.value} -> {phase.value}{detail}")

    def _arm(self, reason: str = "") -> None:
        self._enter(Phase.ARMED, reason=reason or f"n={len(self.registry)}")
        self.stats['cycles_started'] += 1
        self._schedule(self.config.dwell_delay_ms, self._on_dwell_elapsed)

    def _rearm_or_idle(self, reason: str) -> None:
        if self.registry:
            self._arm(reason=reason)
        else:
            self._enter(Phase.IDLE, reason=reason)

    def _on_dwell_elapsed(self) -> None:
        if not self.registry:
            self._enter(Phase.IDLE, reason="dwell elapsed with no touches")
            return
        if self.config.cycling_enabled:
            self._start_cycling()
        else:
            self.select_random()

    def _start_cycling(self) -> None:
        ids = self.registry.ids()
        self._enter(Phase.CYCLING, ids[0], reason=f"{self.config.cycling_steps} steps")
        self._cycle_step = 0
        self._schedule(self.config.cycling_step_delay_ms, self._on_cycle_step)

    def _on_cycle_step(self) -> None:
        self._cycle_step += 1
        if self._cycle_step >= self.config.cycling_steps:
            self.select_random()
            return

        ids = self.registry.ids()
        if not ids:
            self._enter(Phase.IDLE, reason="no touches while cycling")
            return
        # Cosmetic only: the pointer walks the current ids; it does not weight the pick
        self.selected_id = ids[self._cycle_step % len(ids)]
        self._schedule(self.config.cycling_step_delay_ms, self._on_cycle_step)

    def select_random(self) -> Optional[Hashable]:
        """
        Pick uniformly among the ids present right now and enter SELECTED.

        Returns:
            The chosen id, or None (engine goes IDLE) when the registry is empty
        """
        ids = self.registry.ids()
        if not ids:
            self._enter(Phase.IDLE, reason="nothing to select")
            return None

        chosen = ids[int(self.rng.integers(len(ids)))]
        self._enter(Phase.SELECTED, chosen, reason=f"id={chosen!r} of {len(ids)}")
        self.stats['selections'] += 1
        self._schedule(self.config.hold_duration_ms, self._on_hold_elapsed)
        return chosen

    def _on_hold_elapsed(self) -> None:
        self._enter(Phase.FADING, self.selected_id)
        self._schedule(fade_duration_ms(self.config), self._on_fade_complete)

    def _on_fade_complete(self) -> None:
        if not self.registry:
            self._enter(Phase.IDLE, reason="fade complete, no touches")
        elif not self.config.auto_repeat:
            self._enter(Phase.IDLE, reason="fade complete, single shot")
        elif self.config.cooldown_ms > 0:
            self._enter(Phase.COOLDOWN, reason=f"{self.config.cooldown_ms:.0f}ms")
            self._schedule(self.config.cooldown_ms, self._on_cooldown_elapsed)
        else:
            self._arm(reason="auto repeat")

    def _on_cooldown_elapsed(self) -> None:
        self._rearm_or_idle(reason="cooldown elapsed")

    def reset(self) -> None:
        """Cancel everything and return to IDLE. The registry is left alone."""
        self._enter(Phase.IDLE, reason="reset")
        self.stats['resets'] += 1

    # =========================================================================
    # Registry notifications
    # =========================================================================

    def on_first_arrival(self, touch_id: Hashable) -> None:
        if self.phase == Phase.IDLE:
            self._arm(reason=f"first touch {touch_id!r}")

    def on_arrival(self, touch_id: Hashable, count: int) -> None:
        # Covers touches landing after a single-shot cycle or a reset
        if self.phase == Phase.IDLE and self.registry:
            self._arm(reason=f"touch {touch_id!r}")

    def on_departures(self, touch_ids: Tuple[Hashable, ...], remaining: int) -> None:
        # One call per input batch; the registry already reflects all of it
        if self.phase in (Phase.ARMED, Phase.CYCLING):
            self.stats['aborts'] += 1
            self._rearm_or_idle(reason=f"{list(touch_ids)} left during {self.phase.value}")

        elif self.phase in (Phase.SELECTED, Phase.FADING):
            if not self.registry or self.selected_id not in self.registry:
                self.stats['aborts'] += 1
                self._rearm_or_idle(reason=f"selected touch {self.selected_id!r} left")

        elif self.phase == Phase.COOLDOWN:
            if not self.registry:
                self._enter(Phase.IDLE, reason="no touches during cooldown")

    def describe(self) -> Dict[str, Any]:
        """Status summary for logs and the CLI."""
        return {
            'phase': self.phase.value,
            'selected_id': self.selected_id,
            'touches': len(self.registry),
            'timer_pending': self.has_pending_timer,
            **self.stats,
        }

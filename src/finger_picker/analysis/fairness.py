"""
Selection fairness analysis.

The picker promises a uniform choice among the fingers down at the instant
of the pick. This module tallies picks and checks them against the uniform
distribution with Pearson's chi-squared test:

    chi2 = sum((observed - expected)^2 / expected),  dof = N - 1

run_trials() drives a real SelectionEngine on a virtual clock through the
full dwell -> SELECTED path, so the check covers the engine, not just the
random generator.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Hashable, Iterable, List, Optional
import logging

import numpy as np
from scipy import stats

from ..config import PickerConfig
from ..interfaces.input_events import TouchStart
from ..interfaces.render_state import Phase, Position
from ..picker import TouchPicker
from ..timing.scheduler import VirtualScheduler

logger = logging.getLogger('finger-picker.fairness')


@dataclass
class UniformityResult:
    """Outcome of a chi-squared uniformity test."""
    chi_squared: float
    p_value: float
    n_trials: int
    n_categories: int

    def is_uniform(self, alpha: float = 0.01) -> bool:
        """False when uniformity is rejected at significance `alpha`."""
        return self.p_value >= alpha

    def to_dict(self) -> dict:
        return {
            'chi_squared': round(self.chi_squared, 4),
            'p_value': round(self.p_value, 6),
            'n_trials': self.n_trials,
            'n_categories': self.n_categories,
        }


class SelectionTally:
    """Counts how often each id was picked."""

    def __init__(self):
        self._counts: Counter = Counter()

    def record(self, touch_id: Hashable) -> None:
        self._counts[touch_id] += 1

    @property
    def total(self) -> int:
        return sum(self._counts.values())

    def counts(self, ids: Optional[Iterable[Hashable]] = None) -> np.ndarray:
        """Counts in the order of `ids` (ids never picked count 0)."""
        keys = list(ids) if ids is not None else list(self._counts)
        return np.array([self._counts.get(k, 0) for k in keys], dtype=np.int64)

    def frequencies(self) -> Dict[Hashable, float]:
        total = self.total
        if total == 0:
            return {}
        return {k: v / total for k, v in self._counts.items()}


def uniformity_test(counts: Iterable[int]) -> UniformityResult:
    """
    Chi-squared test of `counts` against equal expected frequencies.

    A single category (one finger) is trivially uniform: chi2 = 0, p = 1.
    """
    observed = np.asarray(list(counts), dtype=np.float64)
    n_trials = int(observed.sum())

    if len(observed) < 2 or n_trials == 0:
        return UniformityResult(chi_squared=0.0, p_value=1.0,
                                n_trials=n_trials, n_categories=len(observed))

    chi2, p_value = stats.chisquare(observed)
    return UniformityResult(
        chi_squared=float(chi2),
        p_value=float(p_value),
        n_trials=n_trials,
        n_categories=len(observed),
    )


def run_trials(
    n_fingers: int,
    n_trials: int,
    config: Optional[PickerConfig] = None,
    rng: Optional[np.random.Generator] = None
) -> SelectionTally:
    """
    Run `n_trials` complete picks with `n_fingers` touches down.

    Each trial places the fingers, waits out the dwell (and cycling, when
    enabled), records the winner, and resets the engine.
    """
    if n_fingers < 1:
        raise ValueError(f"n_fingers must be >= 1, got {n_fingers}")

    config = config or PickerConfig()
    scheduler = VirtualScheduler()
    picker = TouchPicker(config, scheduler, rng=rng)
    tally = SelectionTally()

    finger_ids: List[int] = list(range(1, n_fingers + 1))
    wait_ms = config.dwell_delay_ms
    if config.cycling_enabled:
        wait_ms += config.cycling_steps * config.cycling_step_delay_ms

    for trial in range(n_trials):
        picker.handle_events([
            TouchStart(touch_id=i, position=Position(100.0 * i, 100.0), t=scheduler.now())
            for i in finger_ids
        ])
        scheduler.advance(wait_ms)

        if picker.engine.phase != Phase.SELECTED:
            raise RuntimeError(f"Trial {trial}: expected SELECTED, engine is {picker.engine.phase.value}")
        tally.record(picker.engine.selected_id)

        picker.registry.clear()
        picker.engine.reset()

    logger.info(f"Ran {n_trials} trials with {n_fingers} fingers")
    return tally

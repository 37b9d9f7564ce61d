"""
Intensity curves.

Intensity is the single normalized value (0.0 to 1.0) the render harness
uses for the highlighted touch's opacity/glow. It is a pure function of the
current phase and the time elapsed since that phase began, so there is no
animation state to cancel and any instant can be evaluated directly:

    intensity(phase, phase_started_at, now, config)

Fade model:
    The classic picker subtracts `fade_step_rate` once per display frame.
    Here that becomes a linear ramp over nominal frames of
    `frame_interval_ms`:

        I(t) = 1 - fade_step_rate * t / frame_interval_ms

    reaching 0 at fade_duration_ms(config). The engine schedules the end of
    FADING at exactly that instant.

Blink model (optional attention cue at the start of SELECTED):
        I(t) = 0.5 + 0.5 * cos(2*pi * t / blink_period_ms)
    for t < blink_duration_ms, then 1.
"""

from typing import Union
import numpy as np

from ..config import PickerConfig
from ..interfaces.render_state import Phase

ArrayLike = Union[float, np.ndarray]


def fade_duration_ms(config: PickerConfig) -> float:
    """Time for a full-intensity selection to fade to 0."""
    return config.frame_interval_ms / config.fade_step_rate


def fade_curve(elapsed_ms: ArrayLike, config: PickerConfig) -> ArrayLike:
    """Fade intensity after `elapsed_ms` in FADING (vectorized)."""
    elapsed = np.maximum(np.asarray(elapsed_ms, dtype=np.float64), 0.0)
    frames = elapsed / config.frame_interval_ms
    return np.clip(1.0 - config.fade_step_rate * frames, 0.0, 1.0)


def blink_curve(elapsed_ms: ArrayLike, config: PickerConfig) -> ArrayLike:
    """Selected-phase intensity: blink for blink_duration_ms, then steady 1."""
    elapsed = np.maximum(np.asarray(elapsed_ms, dtype=np.float64), 0.0)
    if config.blink_duration_ms <= 0:
        return np.ones_like(elapsed)
    wave = 0.5 + 0.5 * np.cos(2.0 * np.pi * elapsed / config.blink_period_ms)
    return np.clip(np.where(elapsed < config.blink_duration_ms, wave, 1.0), 0.0, 1.0)


def intensity(
    phase: Phase,
    phase_started_at: float,
    now: float,
    config: PickerConfig
) -> float:
    """
    Intensity of the highlighted touch.

    Args:
        phase: Current engine phase
        phase_started_at: Clock time (ms) the phase was entered
        now: Clock time (ms) to evaluate at
        config: Picker configuration

    Returns:
        Value in [0, 1]; 0 for phases with nothing highlighted
    """
    elapsed = now - phase_started_at

    if phase == Phase.CYCLING:
        return 1.0
    if phase == Phase.SELECTED:
        return float(blink_curve(elapsed, config))
    if phase == Phase.FADING:
        return float(fade_curve(elapsed, config))
    return 0.0

"""
Timing for finger-picker.

Scheduler abstraction and the pure intensity curves derived from it.
"""

from .scheduler import Scheduler, TimerHandle, VirtualScheduler, MonotonicScheduler
from .intensity import intensity, fade_curve, blink_curve, fade_duration_ms

__all__ = [
    'Scheduler', 'TimerHandle', 'VirtualScheduler', 'MonotonicScheduler',
    'intensity', 'fade_curve', 'blink_curve', 'fade_duration_ms',
]

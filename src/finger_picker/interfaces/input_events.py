"""
Input boundary events.

The host's raw input layer (browser touch events, SDL, Kivy, a replay
script...) translates its own callbacks into these three records. Per-id
events arrive in order; nothing is guaranteed across ids.

The `t` field is informational for TouchPicker, which stamps every batch
with its own scheduler clock so touches and timers share one time base.
Replay drivers use `t` to decide when to deliver an event.
"""

from dataclasses import dataclass
from typing import Hashable, Union

from .render_state import Position


@dataclass(frozen=True)
class TouchStart:
    """A finger landed. `t` is the host's timestamp (informational)."""
    touch_id: Hashable
    position: Position
    t: float                   # ms, host clock


@dataclass(frozen=True)
class TouchMove:
    """A known finger moved."""
    touch_id: Hashable
    position: Position
    t: float


@dataclass(frozen=True)
class TouchEnd:
    """A finger lifted or the platform cancelled it."""
    touch_id: Hashable
    t: float


TouchEvent = Union[TouchStart, TouchMove, TouchEnd]

EVENT_TYPES = {
    "start": TouchStart,
    "move": TouchMove,
    "end": TouchEnd,
}


def event_from_dict(data: dict) -> TouchEvent:
    """
    Build an event from a script entry.

    Examples:
        {"t": 0, "type": "start", "id": 1, "x": 10, "y": 20}
        {"t": 500, "type": "end", "id": 1}

    Raises:
        ValueError: Unknown event type or missing field
    """
    kind = str(data.get("type", "")).lower()
    if kind not in EVENT_TYPES:
        raise ValueError(f"Unknown event type: {data.get('type')!r}")
    try:
        touch_id = data["id"]
        t = float(data["t"])
    except KeyError as e:
        raise ValueError(f"Event missing field {e}: {data}") from e

    if kind == "end":
        return TouchEnd(touch_id=touch_id, t=t)

    position = Position(float(data.get("x", 0.0)), float(data.get("y", 0.0)))
    return EVENT_TYPES[kind](touch_id=touch_id, position=position, t=t)

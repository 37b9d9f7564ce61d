"""
Render State Data Models

These dataclasses define the contract between finger-picker and the render
harness that draws it. The harness polls a RenderState every frame and turns
it into pixels; it never sees timers, only the normalized intensity.

Contract Version: 1.0.0
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, Hashable, List, Optional
import json


class Phase(str, Enum):
    """Selection state machine phase."""
    IDLE = "IDLE"             # No cycle in progress
    ARMED = "ARMED"           # Waiting out the dwell delay
    CYCLING = "CYCLING"       # Anticipation animation before the pick
    SELECTED = "SELECTED"     # Winner held at full intensity
    FADING = "FADING"         # Winner intensity decaying to 0
    COOLDOWN = "COOLDOWN"     # Pause before re-arming


# Phases in which a selected id may be non-None
HIGHLIGHT_PHASES = frozenset({Phase.CYCLING, Phase.SELECTED, Phase.FADING})


@dataclass(frozen=True)
class Position:
    x: float
    y: float

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class TouchView:
    """One touch as the renderer sees it."""
    touch_id: Hashable
    position: Position

    def to_dict(self) -> dict:
        return {"id": self.touch_id, "x": self.position.x, "y": self.position.y}


@dataclass(frozen=True)
class SelectionView:
    """The highlighted touch and how strongly to draw it."""
    touch_id: Hashable
    intensity: float           # 0.0 to 1.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RenderState:
    """
    Complete per-frame snapshot published to the render harness.

    `selection` is None whenever nothing is highlighted; when present, its
    id is always one of `touches`.
    """
    phase: Phase = Phase.IDLE
    touches: List[TouchView] = field(default_factory=list)
    selection: Optional[SelectionView] = None
    timestamp_ms: float = 0.0

    @property
    def selected_id(self) -> Optional[Hashable]:
        return self.selection.touch_id if self.selection else None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "timestamp_ms": round(self.timestamp_ms, 3),
            "phase": self.phase.value,
            "touches": [t.to_dict() for t in self.touches],
            "selection": None,
        }
        if self.selection:
            data["selection"] = {
                "id": self.selection.touch_id,
                "intensity": round(self.selection.intensity, 4),
            }
        return data

    def to_json(self) -> str:
        """Serialize to a single JSON line."""
        return json.dumps(self.to_dict())

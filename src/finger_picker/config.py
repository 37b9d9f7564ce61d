"""
finger-picker configuration.

Options can come from a TOML file, either flat or grouped into tables:

    [timing]
    dwell_delay_ms = 2000
    hold_duration_ms = 3000
    fade_step_rate = 0.02

    [cycling]
    enabled = true
    steps = 12
    step_delay_ms = 100

    [touches]
    stale_touch_threshold_ms = 1000

Defaults reproduce the classic picker: 2s dwell, 3s hold, a 0.02-per-frame
fade and an immediate re-arm while fingers stay down.
"""

from dataclasses import dataclass, fields, asdict
from pathlib import Path
from typing import Any, Dict, Optional
import logging
import toml

logger = logging.getLogger('finger-picker.config')

# Table-qualified aliases accepted in TOML files
_SECTION_ALIASES = {
    'cycling': {
        'enabled': 'cycling_enabled',
        'steps': 'cycling_steps',
        'step_delay_ms': 'cycling_step_delay_ms',
    },
}
_SECTIONS = ('timing', 'cycling', 'touches', 'random')


@dataclass
class PickerConfig:
    """Tunables for the selection engine and its host facade."""
    dwell_delay_ms: float = 2000.0
    hold_duration_ms: float = 3000.0
    fade_step_rate: float = 0.02            # Intensity lost per nominal frame
    frame_interval_ms: float = 1000.0 / 60  # Nominal display refresh period

    # Attention blink at the start of SELECTED (0 disables)
    blink_duration_ms: float = 0.0
    blink_period_ms: float = 250.0

    cycling_enabled: bool = False
    cycling_steps: int = 12
    cycling_step_delay_ms: float = 100.0

    cooldown_ms: float = 0.0
    auto_repeat: bool = True

    stale_touch_threshold_ms: float = 0.0   # 0 disables
    reset_clears_touches: bool = False

    seed: Optional[int] = None

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Raise ValueError on values the engine cannot run with."""
        for name in ('dwell_delay_ms', 'hold_duration_ms', 'blink_duration_ms',
                     'cycling_step_delay_ms', 'cooldown_ms', 'stale_touch_threshold_ms'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        if not 0.0 < self.fade_step_rate <= 1.0:
            raise ValueError(f"fade_step_rate must be in (0, 1], got {self.fade_step_rate}")
        if self.frame_interval_ms <= 0:
            raise ValueError(f"frame_interval_ms must be > 0, got {self.frame_interval_ms}")
        if self.blink_duration_ms > 0 and self.blink_period_ms <= 0:
            raise ValueError(f"blink_period_ms must be > 0, got {self.blink_period_ms}")
        if self.cycling_enabled and self.cycling_steps < 1:
            raise ValueError(f"cycling_steps must be >= 1, got {self.cycling_steps}")

    @property
    def staleness_enabled(self) -> bool:
        return self.stale_touch_threshold_ms > 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PickerConfig":
        """
        Build a config from a (possibly sectioned) dictionary.

        Unknown keys are logged and ignored.
        """
        known = {f.name for f in fields(cls)}
        flat: Dict[str, Any] = {}

        for key, value in data.items():
            if key in _SECTIONS and isinstance(value, dict):
                aliases = _SECTION_ALIASES.get(key, {})
                for sub_key, sub_value in value.items():
                    flat[aliases.get(sub_key, sub_key)] = sub_value
            else:
                flat[key] = value

        unknown = sorted(k for k in flat if k not in known)
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")

        return cls(**{k: v for k, v in flat.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(config_path: Optional[str] = None) -> PickerConfig:
    """Load configuration from TOML file, or defaults if none is given."""
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path, 'r') as f:
            data = toml.load(f)
        logger.info(f"Loaded config from {path}")
        return PickerConfig.from_dict(data)

    return PickerConfig()

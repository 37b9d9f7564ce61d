"""
Pytest configuration and fixtures for finger-picker tests.
"""

import pytest
import sys
from pathlib import Path

import numpy as np

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from finger_picker.config import PickerConfig
from finger_picker.engine.selection_engine import SelectionEngine
from finger_picker.interfaces.render_state import Position
from finger_picker.picker import TouchPicker
from finger_picker.registry.touch_registry import TouchRegistry
from finger_picker.timing.scheduler import VirtualScheduler


@pytest.fixture
def config():
    """Default configuration with a fixed seed."""
    return PickerConfig(seed=1234)


@pytest.fixture
def scheduler():
    """Virtual clock starting at t=0."""
    return VirtualScheduler()


@pytest.fixture
def registry():
    return TouchRegistry()


@pytest.fixture
def engine(registry, config, scheduler):
    """Engine observing the registry on the virtual clock."""
    return SelectionEngine(registry, config, scheduler, rng=np.random.default_rng(1234))


@pytest.fixture
def picker(config, scheduler):
    return TouchPicker(config, scheduler, rng=np.random.default_rng(1234))


@pytest.fixture
def place(registry, scheduler):
    """Put fingers down at the current virtual time."""
    def _place(*touch_ids):
        with registry.batch():
            for touch_id in touch_ids:
                registry.upsert(touch_id, Position(10.0 * len(registry), 50.0), scheduler.now())
    return _place

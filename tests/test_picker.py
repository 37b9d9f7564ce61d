"""
Tests for the TouchPicker facade: input batches, render state, reset.
"""

import pytest
import numpy as np

from finger_picker.config import PickerConfig
from finger_picker.interfaces.input_events import TouchEnd, TouchMove, TouchStart
from finger_picker.interfaces.render_state import Phase, Position
from finger_picker.picker import TouchPicker
from finger_picker.timing.intensity import fade_duration_ms
from finger_picker.timing.scheduler import VirtualScheduler


def start(touch_id, x=0.0, y=0.0, t=0.0):
    return TouchStart(touch_id=touch_id, position=Position(x, y), t=t)


class TestInputBoundary:
    """Event translation into registry mutations."""

    def test_start_move_end(self, picker):
        picker.handle_event(start(1, 10, 20))
        picker.handle_event(TouchMove(touch_id=1, position=Position(30, 40), t=5))

        state = picker.render_state()
        assert [(t.touch_id, t.position) for t in state.touches] == [(1, Position(30, 40))]
        assert state.phase == Phase.ARMED

        picker.handle_event(TouchEnd(touch_id=1, t=10))
        state = picker.render_state()
        assert state.touches == []
        assert state.phase == Phase.IDLE

    def test_move_for_unknown_id_ignored(self, picker):
        picker.handle_event(TouchMove(touch_id=5, position=Position(1, 1), t=0))
        assert picker.render_state().touches == []
        assert picker.engine.phase == Phase.IDLE

    def test_end_for_unknown_id_ignored(self, picker):
        picker.handle_event(start(1))
        picker.handle_event(TouchEnd(touch_id=42, t=0))
        assert len(picker.registry) == 1
        assert picker.engine.phase == Phase.ARMED

    def test_multi_finger_lift_is_one_batch(self, picker, scheduler):
        """Verify lifting all fingers in one event idles without re-arming in between."""
        picker.handle_events([start(1), start(2), start(3)])
        scheduler.advance_to(1000)
        cycles_before = picker.engine.stats['cycles_started']

        picker.handle_events([TouchEnd(1, 1000), TouchEnd(2, 1000), TouchEnd(3, 1000)])
        assert picker.engine.phase == Phase.IDLE
        assert picker.engine.stats['cycles_started'] == cycles_before
        assert scheduler.pending_count() == 0

    def test_partial_lift_rearms_once(self, picker, scheduler, config):
        """Verify lifting 3 of 4 fingers in one event restarts the dwell exactly once."""
        picker.handle_events([start(1), start(2), start(3), start(4)])
        scheduler.advance_to(1000)
        cycles_before = picker.engine.stats['cycles_started']
        aborts_before = picker.engine.stats['aborts']

        picker.handle_events([TouchEnd(1, 1000), TouchEnd(2, 1000), TouchEnd(3, 1000)])

        assert picker.engine.phase == Phase.ARMED
        assert picker.engine.stats['cycles_started'] - cycles_before == 1
        assert picker.engine.stats['aborts'] - aborts_before == 1
        assert scheduler.pending_count() == 1

        scheduler.advance_to(1000 + config.dwell_delay_ms - 1)
        assert picker.engine.phase == Phase.ARMED
        scheduler.advance_to(1000 + config.dwell_delay_ms)
        assert picker.engine.phase == Phase.SELECTED
        assert picker.engine.selected_id == 4

    def test_touches_stamped_with_scheduler_clock(self, picker, scheduler):
        """Verify the event's own timestamp does not override the scheduler clock."""
        scheduler.advance_to(300)
        picker.handle_event(start(1, t=99999.0))
        touch = picker.registry.get(1)
        assert touch.arrival_time == 300.0
        assert touch.updated_at == 300.0


class TestRenderBoundary:
    """RenderState contents through a full cycle."""

    def test_selection_visible_only_in_highlight_phases(self, picker, scheduler, config):
        picker.handle_events([start(1, 0, 0), start(2, 100, 0)])
        assert picker.tick().selection is None

        scheduler.advance_to(2000)
        state = picker.tick()
        assert state.phase == Phase.SELECTED
        assert state.selection is not None
        assert state.selection.intensity == 1.0
        assert state.selected_id in (1, 2)

        scheduler.advance_to(5000 + fade_duration_ms(config) / 2)
        state = picker.tick()
        assert state.phase == Phase.FADING
        assert state.selection.intensity == pytest.approx(0.5)

        scheduler.advance_to(5000 + fade_duration_ms(config))
        state = picker.tick()
        assert state.selection is None
        assert state.phase == Phase.ARMED

    def test_selected_departure_clears_render_selection(self, picker, scheduler):
        """Verify the next RenderState after the winner lifts has no selection."""
        picker.handle_events([start(1), start(2)])
        scheduler.advance_to(2500)
        winner = picker.render_state().selected_id

        picker.handle_event(TouchEnd(winner, 2500))
        state = picker.tick()
        assert state.selection is None
        assert all(t.touch_id != winner for t in state.touches)

    def test_render_state_json(self, picker, scheduler):
        picker.handle_event(start('a', 1.5, 2.5))
        scheduler.advance_to(2000)
        data = picker.render_state().to_dict()

        assert data['phase'] == 'SELECTED'
        assert data['touches'] == [{'id': 'a', 'x': 1.5, 'y': 2.5}]
        assert data['selection'] == {'id': 'a', 'intensity': 1.0}
        assert '"phase": "SELECTED"' in picker.render_state().to_json()


class TestStalePruning:
    """Stale touches pruned on tick."""

    def test_tick_prunes_abandoned_touch(self):
        scheduler = VirtualScheduler()
        picker = TouchPicker(PickerConfig(stale_touch_threshold_ms=1000), scheduler)

        picker.handle_events([start(1), start(2)])
        scheduler.advance_to(800)
        picker.handle_event(TouchMove(2, Position(5, 5), 800))

        scheduler.advance_to(1200)
        state = picker.tick()
        assert [t.touch_id for t in state.touches] == [2]
        # Pruning is a departure: the dwell restarted
        assert picker.engine.phase == Phase.ARMED
        scheduler.advance_to(3199)
        assert picker.engine.phase == Phase.ARMED


class TestResetBoundary:
    """Reset with and without clearing touches."""

    def test_reset_keeps_touches_by_default(self, picker, scheduler):
        picker.handle_events([start(1), start(2)])
        scheduler.advance_to(3000)

        assert picker.reset() == []
        state = picker.render_state()
        assert state.phase == Phase.IDLE
        assert state.selection is None
        assert len(state.touches) == 2

        picker.reset()
        assert picker.render_state().phase == Phase.IDLE

    def test_reset_can_clear_touches(self):
        scheduler = VirtualScheduler()
        picker = TouchPicker(PickerConfig(reset_clears_touches=True), scheduler,
                             rng=np.random.default_rng(0))
        picker.handle_events([start(1), start(2)])
        scheduler.advance_to(5200)

        assert sorted(picker.reset()) == [1, 2]
        state = picker.render_state()
        assert state.touches == []
        assert state.phase == Phase.IDLE
        assert scheduler.pending_count() == 0

    def test_new_touch_after_reset_arms(self, picker, scheduler):
        picker.handle_event(start(1))
        picker.reset()
        picker.handle_event(start(2))
        assert picker.engine.phase == Phase.ARMED

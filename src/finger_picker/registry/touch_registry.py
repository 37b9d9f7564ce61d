"""
Touch Registry - the set of currently active contact points.

The registry is the only shared mutable resource in finger-picker. Input
handling mutates it; the selection engine only reads it and reacts to the
notifications it emits:

    on_first_arrival(touch_id)          registry went from empty to non-empty
    on_arrival(touch_id, count)         a new id appeared
    on_departures(touch_ids, remaining) known ids were removed

Notifications raised inside a batch() are held back until every mutation of
the batch has been applied, so a listener that reads the registry always sees
the post-batch membership (e.g. three fingers lifted in one touchend event
are all gone before the engine decides whether to re-arm). Every removal of
a batch is reported in a single on_departures call.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Hashable, Iterator, List, Optional, Tuple
import logging

from ..interfaces.render_state import Position

logger = logging.getLogger('finger-picker.registry')


@dataclass
class Touch:
    """One active contact."""
    touch_id: Hashable
    position: Position
    arrival_time: float        # ms, first registration
    updated_at: float          # ms, last start/move seen (staleness policy)


class RegistryListener:
    """Receiver of registry membership notifications. Methods default to no-ops."""

    def on_first_arrival(self, touch_id: Hashable) -> None:
        pass

    def on_arrival(self, touch_id: Hashable, count: int) -> None:
        pass

    def on_departure(self, touch_id: Hashable, remaining: int) -> None:
        pass

    def on_departures(self, touch_ids: Tuple[Hashable, ...], remaining: int) -> None:
        """One notification per batch of removals; defaults to on_departure per id."""
        for touch_id in touch_ids:
            self.on_departure(touch_id, remaining)


class TouchRegistry:
    """
    Mapping of touch id -> Touch with membership notifications.

    Unknown ids are never an error: moving or removing one is a no-op, and an
    id that departed and arrives again is simply a fresh touch.
    """

    def __init__(self, stale_threshold_ms: float = 0.0):
        """
        Args:
            stale_threshold_ms: Drop touches not updated for this long
                in prune_stale() (0 disables)
        """
        self.stale_threshold_ms = stale_threshold_ms
        self._touches: Dict[Hashable, Touch] = {}
        self._listeners: List[RegistryListener] = []
        self._batch_depth = 0
        self._pending: List[Tuple[str, tuple]] = []

    # --- listeners ---

    def add_listener(self, listener: RegistryListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: RegistryListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, method: str, *args) -> None:
        if self._batch_depth > 0:
            self._pending.append((method, args))
            return
        for listener in list(self._listeners):
            getattr(listener, method)(*args)

    @contextmanager
    def batch(self) -> Iterator["TouchRegistry"]:
        """Apply several mutations before any listener hears about them."""
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                self._flush()

    def _flush(self) -> None:
        pending, self._pending = self._pending, []
        departed = tuple(
            touch_id
            for method, args in pending if method == 'on_departures'
            for touch_id in args[0]
        )
        # All removals of the batch go out together at the first one's slot
        merged = False
        for method, args in pending:
            if method == 'on_departures':
                if merged:
                    continue
                merged = True
                args = (departed, len(self._touches))
            self._notify(method, *args)

    # --- mutation ---

    def upsert(self, touch_id: Hashable, position: Position, now: float) -> Touch:
        """Insert a new touch or move an existing one."""
        touch = self._touches.get(touch_id)
        if touch is not None:
            touch.position = position
            touch.updated_at = now
            return touch

        was_empty = not self._touches
        touch = Touch(touch_id=touch_id, position=position, arrival_time=now, updated_at=now)
        self._touches[touch_id] = touch
        logger.debug(f"Touch {touch_id!r} arrived at ({position.x:.0f}, {position.y:.0f}), "
                     f"n={len(self._touches)}")

        if was_empty:
            self._notify('on_first_arrival', touch_id)
        self._notify('on_arrival', touch_id, len(self._touches))
        return touch

    def move(self, touch_id: Hashable, position: Position, now: float) -> bool:
        """Update the position of a known touch; unknown ids are ignored."""
        touch = self._touches.get(touch_id)
        if touch is None:
            return False
        touch.position = position
        touch.updated_at = now
        return True

    def remove(self, touch_id: Hashable) -> bool:
        """Remove a touch; returns False for unknown ids."""
        if self._touches.pop(touch_id, None) is None:
            return False
        logger.debug(f"Touch {touch_id!r} departed, n={len(self._touches)}")
        self._notify('on_departures', (touch_id,), len(self._touches))
        return True

    def clear(self) -> List[Hashable]:
        """Remove every touch in one batch; returns the removed ids."""
        removed = list(self._touches)
        with self.batch():
            for touch_id in removed:
                self.remove(touch_id)
        return removed

    def prune_stale(self, now: float) -> List[Hashable]:
        """
        Remove touches not updated within the stale threshold.

        Guards against platforms that lose touch-end events. Does nothing
        when the threshold is 0.
        """
        if self.stale_threshold_ms <= 0:
            return []

        stale = [
            touch_id for touch_id, touch in self._touches.items()
            if now - touch.updated_at > self.stale_threshold_ms
        ]
        if stale:
            logger.warning(f"Pruning {len(stale)} stale touch(es): {stale} "
                           f"(no update for >{self.stale_threshold_ms:.0f}ms)")
            with self.batch():
                for touch_id in stale:
                    self.remove(touch_id)
        return stale

    # --- read access ---

    def snapshot(self) -> Dict[Hashable, Position]:
        """Read-only copy of id -> position for rendering."""
        return {touch_id: touch.position for touch_id, touch in self._touches.items()}

    def ids(self) -> List[Hashable]:
        """Active ids in arrival order."""
        return list(self._touches)

    def get(self, touch_id: Hashable) -> Optional[Touch]:
        return self._touches.get(touch_id)

    def __len__(self) -> int:
        return len(self._touches)

    def __contains__(self, touch_id: Hashable) -> bool:
        return touch_id in self._touches

    def __bool__(self) -> bool:
        return bool(self._touches)
